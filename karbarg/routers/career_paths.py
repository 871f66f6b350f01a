"""Career path levels and task progression."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.database import get_db
from karbarg.dependencies import CurrentUser, get_current_user
from karbarg.schemas.career import (
    CompletionRewardInfo,
    LevelDetailResponse,
    LevelSummaryResponse,
    LevelTaskInfo,
    PathLevelsResponse,
    TaskTransitionResponse,
)
from karbarg.services.career_content import CompletionReward
from karbarg.services.career_progress_service import CareerProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/career-paths", tags=["career-paths"])


def _reward(reward: CompletionReward) -> CompletionRewardInfo:
    return CompletionRewardInfo(reputation=reward.reputation, badge=reward.badge, unlocks=list(reward.unlocks))


@router.get("/{path_id}/levels", response_model=PathLevelsResponse)
async def get_path_levels(
    path_id: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    summaries = await CareerProgressService(db).get_path_levels(path_id, current.user_id)
    return PathLevelsResponse(
        path_id=path_id,
        levels=[
            LevelSummaryResponse(
                id=s.level.id,
                level_number=s.level.level_number,
                title=s.level.title,
                goal=s.level.goal,
                task_count=len(s.level.tasks),
                progress_percent=s.progress_percent,
                is_unlocked=s.is_unlocked,
                is_completed=s.is_completed,
                completion_reward=_reward(s.level.completion_reward),
            )
            for s in summaries
        ],
    )


@router.get("/levels/{level_id}", response_model=LevelDetailResponse)
async def get_level(
    level_id: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Level tasks with the caller's per-task status and the next task to do."""
    detail = await CareerProgressService(db).get_level_detail(level_id, current.user_id)
    level = detail.level
    return LevelDetailResponse(
        id=level.id,
        path_id=level.path_id,
        level_number=level.level_number,
        title=level.title,
        goal=level.goal,
        tasks=[
            LevelTaskInfo(
                id=task.id,
                type=task.type.value,
                title=task.title,
                description=task.description,
                helper=task.helper,
                cta=task.cta,
                action_url=task.action_url,
                status=detail.statuses[task.id].value,
            )
            for task in level.tasks
        ],
        next_task_id=detail.next_task.id if detail.next_task else None,
        progress_percent=detail.progress_percent,
        is_unlocked=detail.is_unlocked,
        completed_at=detail.completed_at,
        completion_reward=_reward(level.completion_reward),
        encouragement=detail.encouragement,
    )


def _transition_response(transition) -> TaskTransitionResponse:
    return TaskTransitionResponse(
        level_id=transition.level_id,
        task_id=transition.task_id,
        status=transition.status.value,
        progress_percent=transition.progress_percent,
        level_completed=transition.level_completed,
        reward=_reward(transition.reward) if transition.reward else None,
    )


@router.post("/levels/{level_id}/tasks/{task_id}/start", response_model=TaskTransitionResponse)
async def start_task(
    level_id: str,
    task_id: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    transition = await CareerProgressService(db).start_task(level_id, task_id, current.user_id)
    return _transition_response(transition)


@router.post("/levels/{level_id}/tasks/{task_id}/complete", response_model=TaskTransitionResponse)
async def complete_task(
    level_id: str,
    task_id: str,
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    transition = await CareerProgressService(db).complete_task(level_id, task_id, current.user_id)
    return _transition_response(transition)
