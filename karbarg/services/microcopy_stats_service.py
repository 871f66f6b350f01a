"""Microcopy funnel metrics for the admin dashboard."""
from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Iterable, Optional

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.models.base import MicrocopyEventType
from karbarg.models.microcopy_action import MicrocopyAction
from karbarg.models.microcopy_definition import MicrocopyDefinition
from karbarg.models.microcopy_event import MicrocopyEvent
from karbarg.utils.datetime_helpers import window_start

logger = logging.getLogger(__name__)

WEAK_CTR = 0.15
EXCELLENT_CTR = 0.30
UNKNOWN_SEGMENT = "unknown"


class CTRStatus(str, Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


def safe_rate(count: int, shown: int) -> float:
    """``count / shown`` clamped to [0, 1]; 0 when nothing was shown."""
    if count < 0 or shown < 0:
        raise ValueError(f"counts must be >= 0, got count={count}, shown={shown}")
    if shown == 0:
        return 0.0
    return min(1.0, count / shown)


def ctr_status(ctr: float) -> CTRStatus:
    if ctr < WEAK_CTR:
        return CTRStatus.RED
    if ctr < EXCELLENT_CTR:
        return CTRStatus.YELLOW
    return CTRStatus.GREEN


def fatigue_rate(shown_users: Iterable[Any], acted_users: Iterable[Any]) -> float:
    """Share of distinct shown users with no resulting action at all."""
    shown = set(shown_users)
    if not shown:
        return 0.0
    return len(shown - set(acted_users)) / len(shown)


def as_percent(rate: float) -> int:
    return round(rate * 100)


def format_time_to_action(avg_ms: Optional[float]) -> str:
    if not avg_ms or avg_ms <= 0:
        return "N/A"
    avg_ms = int(avg_ms)
    return f"{avg_ms // 60000}m {(avg_ms % 60000) // 1000}s"


class MicrocopyStatsService:
    """Aggregate the shown -> clicked -> action funnel over a trailing window."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _event_counts(self, since) -> dict[str, dict[str, Any]]:
        """Per microcopy: views, clicks and a trigger rule label."""
        shown = MicrocopyEvent.event_type == MicrocopyEventType.SHOWN.value
        clicked = MicrocopyEvent.event_type == MicrocopyEventType.CLICKED.value
        result = await self.db.execute(
            select(
                MicrocopyEvent.microcopy_id,
                func.max(MicrocopyEvent.trigger_rule_id),
                func.sum(case((shown, 1), else_=0)),
                func.sum(case((clicked, 1), else_=0)),
            )
            .where(MicrocopyEvent.created_at >= since)
            .group_by(MicrocopyEvent.microcopy_id)
        )
        return {
            microcopy_id: {"trigger_rule": rule, "views": int(views or 0), "clicks": int(clicks or 0)}
            for microcopy_id, rule, views, clicks in result.all()
        }

    async def _action_rows(self, since) -> list:
        result = await self.db.execute(
            select(
                MicrocopyEvent.microcopy_id,
                MicrocopyEvent.user_id,
                MicrocopyEvent.user_segment,
                MicrocopyAction.reputation_delta,
                MicrocopyAction.time_to_action_ms,
            )
            .join(MicrocopyEvent, MicrocopyEvent.event_id == MicrocopyAction.event_id)
            .where(MicrocopyAction.created_at >= since)
        )
        return result.all()

    async def _shown_users(self, since) -> list:
        result = await self.db.execute(
            select(MicrocopyEvent.microcopy_id, MicrocopyEvent.user_id)
            .where(
                MicrocopyEvent.created_at >= since,
                MicrocopyEvent.event_type == MicrocopyEventType.SHOWN.value,
                MicrocopyEvent.user_id.is_not(None),
            )
            .distinct()
        )
        return result.all()

    async def _segment_counts(self, since) -> list:
        shown = MicrocopyEvent.event_type == MicrocopyEventType.SHOWN.value
        clicked = MicrocopyEvent.event_type == MicrocopyEventType.CLICKED.value
        result = await self.db.execute(
            select(
                MicrocopyEvent.microcopy_id,
                MicrocopyEvent.user_segment,
                func.sum(case((shown, 1), else_=0)),
                func.sum(case((clicked, 1), else_=0)),
            )
            .where(MicrocopyEvent.created_at >= since)
            .group_by(MicrocopyEvent.microcopy_id, MicrocopyEvent.user_segment)
        )
        return result.all()

    async def get_dashboard(self, days: int) -> dict[str, Any]:
        """KPIs, per-microcopy table, segment analysis and the top funnel.

        Rates are computed as fractions and rendered as rounded percentages.
        Fatigue is per user: a shown user counts as fatigued when none of
        their events in the window led to an action.
        """
        if days < 1:
            raise ValueError(f"days must be >= 1, got {days}")
        since = window_start(days)

        counts = await self._event_counts(since)
        action_rows = await self._action_rows(since)
        shown_pairs = await self._shown_users(since)
        segment_rows = await self._segment_counts(since)
        definitions = {
            d.microcopy_id: d for d in (await self.db.execute(select(MicrocopyDefinition))).scalars().all()
        }

        total_shown = sum(c["views"] for c in counts.values())
        total_clicked = sum(c["clicks"] for c in counts.values())
        total_actions = len(action_rows)

        actions_by_copy: dict[str, list] = defaultdict(list)
        actions_by_segment: dict[tuple, int] = defaultdict(int)
        acted_users: dict[str, set] = defaultdict(set)
        for microcopy_id, user_id, segment, rep_delta, time_ms in action_rows:
            actions_by_copy[microcopy_id].append((rep_delta or 0, time_ms))
            actions_by_segment[(microcopy_id, segment or UNKNOWN_SEGMENT)] += 1
            if user_id is not None:
                acted_users[microcopy_id].add(user_id)

        shown_users: dict[str, set] = defaultdict(set)
        for microcopy_id, user_id in shown_pairs:
            shown_users[microcopy_id].add(user_id)

        all_shown_users = set().union(*shown_users.values()) if shown_users else set()
        all_acted_users = set().union(*acted_users.values()) if acted_users else set()

        times = [t for actions in actions_by_copy.values() for _, t in actions if t is not None]
        deltas = [d for actions in actions_by_copy.values() for d, _ in actions]

        kpis = {
            "ctr": as_percent(safe_rate(total_clicked, total_shown)),
            "conversion": as_percent(safe_rate(total_actions, total_shown)),
            "avg_time_to_action": format_time_to_action(sum(times) / len(times) if times else None),
            "avg_reputation_lift": round(sum(deltas) / len(deltas), 2) if deltas else 0,
            "fatigue_rate": as_percent(fatigue_rate(all_shown_users, all_acted_users)),
        }

        default_cooldown = get_settings().microcopy_default_cooldown_hours
        table = []
        for microcopy_id, c in sorted(counts.items(), key=lambda item: (-item[1]["views"], item[0])):
            actions = actions_by_copy.get(microcopy_id, [])
            ctr = safe_rate(c["clicks"], c["views"])
            definition = definitions.get(microcopy_id)
            table.append({
                "microcopy_id": microcopy_id,
                "trigger_rule": c["trigger_rule"] or "N/A",
                "views": c["views"],
                "clicks": c["clicks"],
                "actions": len(actions),
                "ctr": as_percent(ctr),
                "conversion": as_percent(safe_rate(len(actions), c["views"])),
                "fatigue_rate": as_percent(
                    fatigue_rate(shown_users.get(microcopy_id, ()), acted_users.get(microcopy_id, ()))
                ),
                "avg_rep_plus": round(sum(d for d, _ in actions) / len(actions), 1) if actions else 0,
                "cooldown": f"{definition.cooldown_hours if definition else default_cooldown}h",
                "status": ctr_status(ctr).value,
                "is_enabled": definition.is_enabled if definition else True,
            })

        segment_analysis: dict[str, dict[str, dict[str, int]]] = defaultdict(dict)
        for microcopy_id, segment, views, clicks in segment_rows:
            segment = segment or UNKNOWN_SEGMENT
            views = int(views or 0)
            segment_analysis[microcopy_id][segment] = {
                "ctr": as_percent(safe_rate(int(clicks or 0), views)),
                "conversion": as_percent(safe_rate(actions_by_segment.get((microcopy_id, segment), 0), views)),
            }

        funnel = None
        if table:
            top = table[0]
            funnel = {
                "microcopy_id": top["microcopy_id"],
                "shown": top["views"],
                "clicked": top["clicks"],
                "actions": top["actions"],
            }

        logger.info(
            f"Microcopy dashboard days={days}: shown={total_shown} clicked={total_clicked} actions={total_actions}"
        )
        return {
            "kpis": kpis,
            "microcopy_table": table,
            "segment_analysis": dict(segment_analysis),
            "funnel": funnel,
            "meta": {
                "days": days,
                "total_shown": total_shown,
                "total_clicked": total_clicked,
                "total_actions": total_actions,
            },
        }
