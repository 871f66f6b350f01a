"""Career path schemas."""
from karbarg.schemas.base import BaseSchema, UTCDateTime
from typing import Optional


class CompletionRewardInfo(BaseSchema):
    reputation: int
    badge: Optional[str] = None
    unlocks: list[str]


class LevelTaskInfo(BaseSchema):
    id: str
    type: str
    title: str
    description: str
    helper: Optional[str] = None
    cta: str
    action_url: Optional[str] = None
    status: str


class LevelSummaryResponse(BaseSchema):
    id: str
    level_number: int
    title: str
    goal: str
    task_count: int
    progress_percent: int
    is_unlocked: bool
    is_completed: bool
    completion_reward: CompletionRewardInfo


class PathLevelsResponse(BaseSchema):
    path_id: str
    levels: list[LevelSummaryResponse]


class LevelDetailResponse(BaseSchema):
    id: str
    path_id: str
    level_number: int
    title: str
    goal: str
    tasks: list[LevelTaskInfo]
    next_task_id: Optional[str] = None
    progress_percent: int
    is_unlocked: bool
    completed_at: Optional[UTCDateTime] = None
    completion_reward: CompletionRewardInfo
    encouragement: str


class TaskTransitionResponse(BaseSchema):
    level_id: str
    task_id: str
    status: str
    progress_percent: int
    level_completed: bool
    reward: Optional[CompletionRewardInfo] = None
