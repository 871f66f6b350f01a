"""Runtime Q&A settings editable by admins without a redeploy."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from karbarg.config import get_settings
from karbarg.models.qa_setting import QASetting
from karbarg.services.quality_scoring import QualityThresholds
from karbarg.utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)

THRESHOLD_KEYS = ("aqs_useful_threshold", "aqs_pro_threshold")
TRUTHY = ("true", "1", "yes", "on")


class SystemConfigService:
    """Typed key/value overrides stored in ``qa_settings``.

    Every key in ``CONFIG_SCHEMA`` has a default on ``Settings``; a row in
    the table shadows it. Values are stored as text and converted back
    using the recorded ``value_type``.
    """

    CONFIG_SCHEMA: Dict[str, Dict[str, Any]] = {
        "qa_enabled": {
            "type": "bool",
            "category": "general",
            "description": "Serve the Q&A section",
        },
        "daily_question_limit": {
            "type": "int",
            "category": "limits",
            "description": "Questions a user may post per day",
            "min": 1,
            "max": 100,
        },
        "daily_answer_limit": {
            "type": "int",
            "category": "limits",
            "description": "Answers a user may post per day",
            "min": 1,
            "max": 200,
        },
        "max_question_tags": {
            "type": "int",
            "category": "limits",
            "description": "Maximum tags on a question",
            "min": 0,
            "max": 10,
        },
        "aqs_useful_threshold": {
            "type": "int",
            "category": "quality",
            "description": "Minimum AQS for the USEFUL label",
            "min": 1,
            "max": 99,
        },
        "aqs_pro_threshold": {
            "type": "int",
            "category": "quality",
            "description": "Minimum AQS for the PRO label",
            "min": 2,
            "max": 100,
        },
    }

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_entry(self, key: str) -> Optional[QASetting]:
        return await self.session.get(QASetting, key)

    async def get_config_value(self, key: str, default: Any = None) -> Optional[Any]:
        """Stored override for ``key``, else the ``Settings`` value, else ``default``."""
        entry = await self._get_entry(key)
        if entry is not None:
            return self.deserialize_value(entry.value, entry.value_type)
        return getattr(get_settings(), key, default)

    async def get_quality_thresholds(self) -> QualityThresholds:
        return QualityThresholds(
            useful=await self.get_config_value("aqs_useful_threshold"),
            pro=await self.get_config_value("aqs_pro_threshold"),
        )

    async def get_all_config(self) -> Dict[str, Any]:
        """Effective value of every schema key."""
        settings = get_settings()
        effective = {key: getattr(settings, key, None) for key in self.CONFIG_SCHEMA}

        result = await self.session.execute(
            select(QASetting).where(QASetting.key.in_(list(self.CONFIG_SCHEMA)))
        )
        for entry in result.scalars().all():
            effective[entry.key] = self.deserialize_value(entry.value, entry.value_type)
        return effective

    async def set_config_value(
        self,
        key: str,
        value: Any,
        updated_by: Optional[str] = None,
    ) -> QASetting:
        """Validate and store an override.

        A threshold change relabels every stored quality metric before the
        commit, so the new labels are visible as soon as the setting is.

        Raises:
            ValueError: Unknown key, wrong type, out of range, or a threshold
                pair where ``useful`` would not sit below ``pro``
        """
        schema = self.CONFIG_SCHEMA.get(key)
        if schema is None:
            raise ValueError(f"Unknown configuration key: {key}")

        converted = self.coerce_value(key, value, schema)
        thresholds = await self._thresholds_after(key, converted) if key in THRESHOLD_KEYS else None

        now = utc_now()
        entry = await self._get_entry(key)
        if entry is None:
            entry = QASetting(
                key=key,
                description=schema.get("description"),
                category=schema.get("category"),
            )
            self.session.add(entry)
        entry.value = self.serialize_value(converted, schema["type"])
        entry.value_type = schema["type"]
        entry.updated_at = now
        entry.updated_by = updated_by

        if thresholds is not None:
            from karbarg.services.answer_quality_service import AnswerQualityService
            relabeled = await AnswerQualityService(self.session).relabel_all(thresholds)
            logger.info(f"Relabeled {relabeled} quality metrics after {key} change")

        await self.session.commit()
        await self.session.refresh(entry)

        logger.info(f"Setting {key} = {converted} (by {updated_by or 'system'})")
        return entry

    async def _thresholds_after(self, key: str, new_value: int) -> QualityThresholds:
        current = await self.get_quality_thresholds()
        if key == "aqs_useful_threshold":
            return QualityThresholds(useful=new_value, pro=current.pro)
        return QualityThresholds(useful=current.useful, pro=new_value)

    @staticmethod
    def coerce_value(key: str, value: Any, schema: Dict[str, Any]) -> Any:
        """Convert a raw admin-supplied value to the key's type and check its range."""
        value_type = schema["type"]

        if value_type == "bool":
            if isinstance(value, str):
                return value.strip().lower() in TRUTHY
            return bool(value)

        if value_type != "int":
            raise ValueError(f"Unsupported value type {value_type} for {key}")
        if isinstance(value, bool):
            raise ValueError(f"{key} expects an integer, got {value!r}")
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{key} expects an integer, got {value!r}") from exc

        low, high = schema.get("min"), schema.get("max")
        if (low is not None and number < low) or (high is not None and number > high):
            raise ValueError(f"{key} must be between {low} and {high}, got {number}")
        return number

    @staticmethod
    def serialize_value(value: Any, value_type: str) -> str:
        if value_type == "bool":
            return "true" if value else "false"
        return str(value)

    @staticmethod
    def deserialize_value(value: str, value_type: str) -> Any:
        if value_type == "int":
            return int(value)
        if value_type == "bool":
            return value.lower() in TRUTHY
        return value
