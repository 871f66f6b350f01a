"""Career-path progression: per-task status and forward-only transitions."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.models.career_progress import CareerLevelProgress
from karbarg.services.career_content import (
    CareerContent,
    CareerLevel,
    CompletionReward,
    LevelTask,
    get_career_content,
)
from karbarg.utils.datetime_helpers import utc_now
from karbarg.utils.db import dialect_insert
from karbarg.utils.exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    LOCKED = "locked"
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def task_status(
    task_ids: Sequence[str],
    index: int,
    completed: set[str] | frozenset[str],
    in_progress_task_id: Optional[str] = None,
) -> TaskStatus:
    """Status of the task at ``index`` from the completed set and the current marker.

    A task is locked while any earlier task is incomplete; there is no
    skipping ahead.
    """
    if not 0 <= index < len(task_ids):
        raise ValueError(f"task index {index} out of range for {len(task_ids)} tasks")
    task_id = task_ids[index]
    if task_id in completed:
        return TaskStatus.COMPLETED
    if task_id == in_progress_task_id:
        return TaskStatus.IN_PROGRESS
    if any(earlier not in completed for earlier in task_ids[:index]):
        return TaskStatus.LOCKED
    return TaskStatus.PENDING


def task_statuses(
    task_ids: Sequence[str],
    completed: set[str] | frozenset[str],
    in_progress_task_id: Optional[str] = None,
) -> list[TaskStatus]:
    return [task_status(task_ids, i, completed, in_progress_task_id) for i in range(len(task_ids))]


def progress_percent(task_ids: Sequence[str], completed: set[str] | frozenset[str]) -> int:
    if not task_ids:
        return 0
    done = sum(1 for task_id in task_ids if task_id in completed)
    return round(done / len(task_ids) * 100)


@dataclass
class LevelSummary:
    level: CareerLevel
    progress_percent: int
    is_unlocked: bool
    is_completed: bool


@dataclass
class LevelDetail:
    level: CareerLevel
    statuses: dict[str, TaskStatus]
    next_task: Optional[LevelTask]
    progress_percent: int
    is_unlocked: bool
    completed_at: Optional[datetime]
    encouragement: str


@dataclass
class TaskTransition:
    level_id: str
    task_id: str
    status: TaskStatus
    progress_percent: int
    level_completed: bool = False
    reward: Optional[CompletionReward] = None


class CareerProgressService:
    """Track one user's progress through career levels.

    Progress is append-only: tasks move locked -> pending -> in_progress ->
    completed and never back. A level can be entered once the level whose
    reward unlocks it is complete.
    """

    def __init__(self, db: AsyncSession, content: Optional[CareerContent] = None):
        self.db = db
        self.content = content or get_career_content()

    def _get_level(self, level_id: str) -> CareerLevel:
        level = self.content.get_level(level_id)
        if level is None:
            raise NotFoundError("Career level not found")
        return level

    async def _progress_map(self, user_id: UUID) -> dict[str, CareerLevelProgress]:
        result = await self.db.execute(
            select(CareerLevelProgress).where(CareerLevelProgress.user_id == user_id)
        )
        return {row.level_id: row for row in result.scalars().all()}

    def _is_unlocked(self, level: CareerLevel, progress: dict[str, CareerLevelProgress]) -> bool:
        previous = self.content.prerequisite_of(level.id)
        if previous is None:
            return True
        row = progress.get(previous.id)
        return row is not None and row.completed_at is not None

    async def get_path_levels(self, path_id: str, user_id: UUID) -> list[LevelSummary]:
        levels = self.content.levels_for_path(path_id)
        if not levels:
            raise NotFoundError("Career path not found")

        progress = await self._progress_map(user_id)
        summaries = []
        for level in levels:
            row = progress.get(level.id)
            completed = set(row.completed_task_ids) if row else set()
            summaries.append(
                LevelSummary(
                    level=level,
                    progress_percent=progress_percent(level.task_ids, completed),
                    is_unlocked=self._is_unlocked(level, progress),
                    is_completed=row is not None and row.completed_at is not None,
                )
            )
        return summaries

    async def get_level_detail(self, level_id: str, user_id: UUID) -> LevelDetail:
        level = self._get_level(level_id)
        progress = await self._progress_map(user_id)
        row = progress.get(level_id)
        completed = set(row.completed_task_ids) if row else set()
        marker = row.in_progress_task_id if row else None

        statuses = dict(zip(level.task_ids, task_statuses(level.task_ids, completed, marker)))
        next_task = next((task for task in level.tasks if task.id not in completed), None)
        return LevelDetail(
            level=level,
            statuses=statuses,
            next_task=next_task,
            progress_percent=progress_percent(level.task_ids, completed),
            is_unlocked=self._is_unlocked(level, progress),
            completed_at=row.completed_at if row else None,
            encouragement=self.content.random_encouragement(),
        )

    async def _lock_progress(self, user_id: UUID, level_id: str) -> CareerLevelProgress:
        """Fetch the (user, level) row for update, creating it on first touch."""
        stmt = dialect_insert(self.db, CareerLevelProgress).values(
            progress_id=uuid.uuid4(),
            user_id=user_id,
            level_id=level_id,
            completed_task_ids=[],
            started_at=utc_now(),
        ).on_conflict_do_nothing(index_elements=["user_id", "level_id"])
        await self.db.execute(stmt)

        result = await self.db.execute(
            select(CareerLevelProgress)
            .where(CareerLevelProgress.user_id == user_id, CareerLevelProgress.level_id == level_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _prepare_transition(self, level_id: str, task_id: str, user_id: UUID):
        level = self._get_level(level_id)
        if level.get_task(task_id) is None:
            raise NotFoundError("Task not found in this level")
        if not self._is_unlocked(level, await self._progress_map(user_id)):
            raise ConflictError("This level is locked until the previous level is completed")

        row = await self._lock_progress(user_id, level_id)
        completed = set(row.completed_task_ids)
        status = task_status(level.task_ids, level.task_ids.index(task_id), completed, row.in_progress_task_id)
        return level, row, completed, status

    async def start_task(self, level_id: str, task_id: str, user_id: UUID) -> TaskTransition:
        """Move a pending task to in_progress.

        Raises:
            NotFoundError: Unknown level or task
            ConflictError: Level locked, or the task is not pending
        """
        level, row, completed, status = await self._prepare_transition(level_id, task_id, user_id)
        if status != TaskStatus.PENDING:
            raise ConflictError(f"Task cannot be started from status {status.value}")

        row.in_progress_task_id = task_id
        row.updated_at = utc_now()
        await self.db.commit()

        logger.info(f"User {user_id} started task {task_id} in {level_id}")
        return TaskTransition(
            level_id=level_id,
            task_id=task_id,
            status=TaskStatus.IN_PROGRESS,
            progress_percent=progress_percent(level.task_ids, completed),
        )

    async def complete_task(self, level_id: str, task_id: str, user_id: UUID) -> TaskTransition:
        """Complete a pending or in-progress task.

        Completing the last task stamps the level's completion time and
        returns its reward.

        Raises:
            NotFoundError: Unknown level or task
            ConflictError: Level locked, task locked, or task already completed
        """
        level, row, completed, status = await self._prepare_transition(level_id, task_id, user_id)
        if status not in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS):
            raise ConflictError(f"Task cannot be completed from status {status.value}")

        now = utc_now()
        row.completed_task_ids.append(task_id)
        completed.add(task_id)
        if row.in_progress_task_id == task_id:
            row.in_progress_task_id = None
        row.updated_at = now

        level_completed = all(tid in completed for tid in level.task_ids)
        if level_completed:
            row.completed_at = now
        await self.db.commit()

        logger.info(
            f"User {user_id} completed task {task_id} in {level_id} (level_completed={level_completed})"
        )
        return TaskTransition(
            level_id=level_id,
            task_id=task_id,
            status=TaskStatus.COMPLETED,
            progress_percent=progress_percent(level.task_ids, completed),
            level_completed=level_completed,
            reward=level.completion_reward if level_completed else None,
        )
