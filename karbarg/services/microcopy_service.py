"""Microcopy serving, event tracking and definition management."""
import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.models.answer import Answer
from karbarg.models.base import MicrocopyEventType, MicrocopyActionType, UserSegment
from karbarg.models.microcopy_action import MicrocopyAction
from karbarg.models.microcopy_cooldown import MicrocopyCooldown
from karbarg.models.microcopy_definition import MicrocopyDefinition
from karbarg.models.microcopy_event import MicrocopyEvent
from karbarg.utils.datetime_helpers import utc_now
from karbarg.utils.db import dialect_insert
from karbarg.utils.exceptions import ConflictError, NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

JUNIOR_MAX_ANSWERS = 5
ALL_SEGMENTS = "all"


def segment_for_answer_count(answer_count: int) -> UserSegment:
    """0 answers is new, up to five is junior, beyond that professional."""
    if answer_count < 0:
        raise ValueError(f"answer_count must be >= 0, got {answer_count}")
    if answer_count == 0:
        return UserSegment.NEW
    if answer_count <= JUNIOR_MAX_ANSWERS:
        return UserSegment.JUNIOR
    return UserSegment.PROFESSIONAL


class MicrocopyService:
    """Record the shown/clicked/action funnel and manage microcopy variants."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _visible_answer_count(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Answer)
            .where(Answer.author_id == user_id, Answer.is_hidden.is_(False))
        )
        return result.scalar_one()

    async def _touch_cooldown(self, user_id: UUID, microcopy_id: str) -> None:
        now = utc_now()
        stmt = dialect_insert(self.db, MicrocopyCooldown).values(
            user_id=user_id,
            microcopy_id=microcopy_id,
            last_shown_at=now,
            show_count=1,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "microcopy_id"],
            set_={
                "last_shown_at": now,
                "show_count": MicrocopyCooldown.show_count + 1,
            },
        )
        await self.db.execute(stmt)

    async def record_event(
        self,
        microcopy_id: str,
        event_type: Any,
        user_id: Optional[UUID] = None,
        trigger_rule_id: Optional[str] = None,
        page_url: Optional[str] = None,
        question_id: Optional[UUID] = None,
        metadata: Optional[dict] = None,
    ) -> MicrocopyEvent:
        """Store one funnel event. Anonymous callers land in the ``new`` segment."""
        microcopy_id = (microcopy_id or "").strip()
        if not microcopy_id:
            raise ValidationFailedError("microcopyId is required")
        try:
            event_type = MicrocopyEventType(event_type)
        except ValueError as exc:
            raise ValidationFailedError("Invalid microcopy event type") from exc

        answer_count = await self._visible_answer_count(user_id) if user_id else 0
        segment = segment_for_answer_count(answer_count)

        event = MicrocopyEvent(
            microcopy_id=microcopy_id,
            trigger_rule_id=trigger_rule_id,
            user_id=user_id,
            event_type=event_type.value,
            page_url=page_url,
            question_id=question_id,
            user_segment=segment.value,
            user_answer_count=answer_count,
            context=metadata,
            created_at=utc_now(),
        )
        self.db.add(event)

        if event_type == MicrocopyEventType.SHOWN and user_id:
            await self._touch_cooldown(user_id, microcopy_id)

        await self.db.commit()
        await self.db.refresh(event)
        logger.debug(f"Microcopy {microcopy_id} {event_type.value} (user={user_id}, segment={segment.value})")
        return event

    async def get_cooldowns(self, user_id: UUID) -> dict[str, MicrocopyCooldown]:
        result = await self.db.execute(
            select(MicrocopyCooldown).where(MicrocopyCooldown.user_id == user_id)
        )
        return {row.microcopy_id: row for row in result.scalars().all()}

    async def record_action(
        self,
        event_id: UUID,
        action_type: Any,
        user_id: Optional[UUID] = None,
        answer_id: Optional[UUID] = None,
        question_id: Optional[UUID] = None,
        reputation_delta: Optional[int] = None,
        time_to_action_ms: Optional[int] = None,
    ) -> MicrocopyAction:
        """Credit a follow-up action to an earlier event.

        Raises:
            ValidationFailedError: Unknown action type or negative time
            NotFoundError: The referenced event does not exist
        """
        try:
            action_type = MicrocopyActionType(action_type)
        except ValueError as exc:
            raise ValidationFailedError("Invalid microcopy action type") from exc
        if time_to_action_ms is not None and time_to_action_ms < 0:
            raise ValidationFailedError("timeToActionMs must be >= 0")

        event = await self.db.get(MicrocopyEvent, event_id)
        if event is None:
            raise NotFoundError("Microcopy event not found")

        action = MicrocopyAction(
            event_id=event_id,
            user_id=user_id,
            action_type=action_type.value,
            answer_id=answer_id,
            question_id=question_id,
            reputation_delta=reputation_delta or 0,
            time_to_action_ms=time_to_action_ms,
            created_at=utc_now(),
        )
        self.db.add(action)
        await self.db.commit()
        await self.db.refresh(action)
        logger.info(f"Microcopy action {action_type.value} credited to event {event_id} ({event.microcopy_id})")
        return action

    async def list_enabled_definitions(self, segment: Optional[str] = None) -> list[MicrocopyDefinition]:
        """Definitions currently served, highest priority first."""
        stmt = select(MicrocopyDefinition).where(MicrocopyDefinition.is_enabled.is_(True))
        if segment:
            stmt = stmt.where(
                or_(
                    MicrocopyDefinition.target_segment == ALL_SEGMENTS,
                    MicrocopyDefinition.target_segment == segment,
                )
            )
        result = await self.db.execute(
            stmt.order_by(MicrocopyDefinition.priority.desc(), MicrocopyDefinition.microcopy_id)
        )
        return list(result.scalars().all())

    async def list_definitions(self) -> list[MicrocopyDefinition]:
        result = await self.db.execute(
            select(MicrocopyDefinition).order_by(
                MicrocopyDefinition.priority.desc(), MicrocopyDefinition.microcopy_id
            )
        )
        return list(result.scalars().all())

    @staticmethod
    def _check_segment(segment: str) -> str:
        allowed = {ALL_SEGMENTS} | {s.value for s in UserSegment}
        if segment not in allowed:
            raise ValidationFailedError(f"targetSegment must be one of: {', '.join(sorted(allowed))}")
        return segment

    async def create_definition(
        self,
        microcopy_id: str,
        trigger_rule: str,
        text_fa: str,
        target_segment: str = ALL_SEGMENTS,
        priority: Optional[int] = None,
        cooldown_hours: Optional[int] = None,
        is_enabled: bool = True,
    ) -> MicrocopyDefinition:
        settings = get_settings()
        if await self.db.get(MicrocopyDefinition, microcopy_id) is not None:
            raise ConflictError(f"Microcopy {microcopy_id} already exists")

        definition = MicrocopyDefinition(
            microcopy_id=microcopy_id,
            trigger_rule=trigger_rule,
            text_fa=text_fa,
            target_segment=self._check_segment(target_segment),
            priority=settings.microcopy_default_priority if priority is None else priority,
            cooldown_hours=settings.microcopy_default_cooldown_hours if cooldown_hours is None else cooldown_hours,
            is_enabled=is_enabled,
            created_at=utc_now(),
        )
        self.db.add(definition)
        await self.db.commit()
        await self.db.refresh(definition)
        logger.info(f"Microcopy definition {microcopy_id} created")
        return definition

    async def update_definition(self, microcopy_id: str, **changes: Any) -> MicrocopyDefinition:
        """Apply partial changes; toggling ``is_enabled`` never touches recorded events."""
        definition = await self.db.get(MicrocopyDefinition, microcopy_id)
        if definition is None:
            raise NotFoundError("Microcopy definition not found")

        for key in ("trigger_rule", "text_fa", "target_segment", "priority", "cooldown_hours", "is_enabled"):
            value = changes.get(key)
            if value is None:
                continue
            if key == "target_segment":
                value = self._check_segment(value)
            setattr(definition, key, value)

        definition.updated_at = utc_now()
        await self.db.commit()
        await self.db.refresh(definition)
        logger.info(f"Microcopy definition {microcopy_id} updated: {sorted(k for k, v in changes.items() if v is not None)}")
        return definition

    async def delete_definition(self, microcopy_id: str) -> None:
        definition = await self.db.get(MicrocopyDefinition, microcopy_id)
        if definition is None:
            raise NotFoundError("Microcopy definition not found")
        await self.db.delete(definition)
        await self.db.commit()
        logger.info(f"Microcopy definition {microcopy_id} deleted")
