# assessment_engine/core/utils.py
import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Optional, Tuple

from bson import ObjectId

from .config import config
from .exceptions import ValidationError
from .models import InterviewLevel, InterviewType, QuizKind, SessionMode

logger = logging.getLogger(__name__)

SCHEDULE_PERIOD_PATTERN = re.compile(r"^\d{4}-W\d{2}$")

class ValidationUtils:
    """Utility functions for request validation"""

    @staticmethod
    def validate_object_id(value: Any, name: str = "id") -> ObjectId:
        """Parse a document id or raise ValidationError"""
        if isinstance(value, ObjectId):
            return value
        if not isinstance(value, str) or not ObjectId.is_valid(value):
            raise ValidationError(f"Invalid {name}: {value!r}")
        return ObjectId(value)

    @staticmethod
    def require_text(value: Any, name: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name} is required")
        return value.strip()

    @staticmethod
    def validate_session_mode(mode: Any) -> SessionMode:
        try:
            return SessionMode(mode)
        except ValueError:
            raise ValidationError(f"Invalid session mode: {mode!r}")

    @staticmethod
    def validate_interview_type(interview_type: Any) -> InterviewType:
        # Case-insensitive so "technical" and "Technical" both work
        for member in InterviewType:
            if isinstance(interview_type, str) and member.value.lower() == interview_type.strip().lower():
                return member
        raise ValidationError(f"Invalid interview type: {interview_type!r}")

    @staticmethod
    def validate_interview_level(level: Any) -> InterviewLevel:
        for member in InterviewLevel:
            if isinstance(level, str) and member.value.lower() == level.strip().lower():
                return member
        raise ValidationError(f"Invalid interview level: {level!r}")

    @staticmethod
    def validate_quiz_kind(kind: Any) -> QuizKind:
        try:
            return QuizKind(kind.upper() if isinstance(kind, str) else kind)
        except ValueError:
            raise ValidationError(f"Invalid quiz kind: {kind!r}")

    @staticmethod
    def validate_schedule_period(period: Any) -> str:
        if not isinstance(period, str) or not SCHEDULE_PERIOD_PATTERN.match(period):
            raise ValidationError(f"Invalid schedule period: {period!r} (expected YYYY-Www)")
        return period

    @staticmethod
    def validate_pagination(page: Any, page_size: Any) -> Tuple[int, int]:
        """Validate 1-based page and page size against configured bounds"""
        try:
            page = int(page)
            page_size = int(page_size)
        except (TypeError, ValueError):
            raise ValidationError("page and page_size must be integers")

        if page < 1:
            raise ValidationError("page must be at least 1")
        if not (1 <= page_size <= config.LEADERBOARD_MAX_PAGE_SIZE):
            raise ValidationError(
                f"page_size must be between 1 and {config.LEADERBOARD_MAX_PAGE_SIZE}"
            )
        return page, page_size

class DateTimeUtils:
    """Utility functions for date/time operations"""

    @staticmethod
    def utcnow() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_aware(value: datetime) -> datetime:
        """Treat naive datetimes as UTC"""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @staticmethod
    def schedule_period(moment: Optional[datetime] = None) -> str:
        """ISO year-week key for the recurrence bucket, e.g. 2025-W05"""
        if moment is None:
            moment = DateTimeUtils.utcnow()
        iso_year, iso_week, _ = DateTimeUtils.ensure_aware(moment).astimezone(timezone.utc).isocalendar()
        return f"{iso_year}-W{iso_week:02d}"

    @staticmethod
    def elapsed_seconds(start: datetime, end: datetime) -> int:
        """Whole seconds between two instants; may be negative"""
        delta = DateTimeUtils.ensure_aware(end) - DateTimeUtils.ensure_aware(start)
        return math.floor(delta.total_seconds())

def serialize_document(value: Any) -> Any:
    """Make a Mongo document JSON-friendly: ObjectIds to str, `_id` to `id`"""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {("id" if k == "_id" else k): serialize_document(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_document(v) for v in value]
    return value
