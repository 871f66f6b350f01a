"""Static career-path content, validated once at load time."""
import json
import logging
import random
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

CONTENT_PATH = Path(__file__).parent.parent / "data" / "career_levels.json"


class TaskType(str, Enum):
    ANSWER = "answer"
    VOTE = "vote"
    PROFILE = "profile"
    CASE = "case"


class CompletionReward(BaseModel):
    model_config = ConfigDict(frozen=True)

    reputation: int = Field(ge=0)
    badge: Optional[str] = None
    unlocks: tuple[str, ...] = ()


class LevelTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    type: TaskType
    title: str
    description: str
    helper: Optional[str] = None
    cta: str
    action_url: Optional[str] = None


class CareerLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    path_id: str
    level_number: int = Field(ge=0)
    title: str
    goal: str
    tasks: tuple[LevelTask, ...] = Field(min_length=1)
    completion_reward: CompletionReward

    @model_validator(mode="after")
    def unique_task_ids(self):
        ids = [task.id for task in self.tasks]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate task ids in level {self.id}")
        return self

    @property
    def task_ids(self) -> list[str]:
        return [task.id for task in self.tasks]

    def get_task(self, task_id: str) -> Optional[LevelTask]:
        return next((task for task in self.tasks if task.id == task_id), None)


class CareerContent(BaseModel):
    """All levels plus the encouragement pool; unlock targets must exist."""
    model_config = ConfigDict(frozen=True)

    encouragement_messages: tuple[str, ...] = Field(min_length=1)
    levels: tuple[CareerLevel, ...]

    @model_validator(mode="after")
    def check_graph(self):
        ids = {level.id for level in self.levels}
        if len(ids) != len(self.levels):
            raise ValueError("Duplicate career level ids")
        for level in self.levels:
            for target in level.completion_reward.unlocks:
                if target not in ids:
                    raise ValueError(f"Level {level.id} unlocks unknown level {target}")
        return self

    def levels_for_path(self, path_id: str) -> list[CareerLevel]:
        return sorted(
            (level for level in self.levels if level.path_id == path_id),
            key=lambda level: level.level_number,
        )

    def get_level(self, level_id: str) -> Optional[CareerLevel]:
        return next((level for level in self.levels if level.id == level_id), None)

    def prerequisite_of(self, level_id: str) -> Optional[CareerLevel]:
        """The level whose completion reward unlocks ``level_id``, if any."""
        return next(
            (level for level in self.levels if level_id in level.completion_reward.unlocks),
            None,
        )

    def random_encouragement(self, rng: Optional[random.Random] = None) -> str:
        return (rng or random).choice(self.encouragement_messages)


def load_career_content(path: Path = CONTENT_PATH) -> CareerContent:
    with open(path, "r", encoding="utf-8") as f:
        content = CareerContent.model_validate(json.load(f))
    logger.info(f"Loaded {len(content.levels)} career levels from {path.name}")
    return content


@lru_cache()
def get_career_content() -> CareerContent:
    """Get cached career content."""
    return load_career_content()
