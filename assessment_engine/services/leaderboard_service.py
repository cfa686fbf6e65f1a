# assessment_engine/services/leaderboard_service.py
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.config import config
from ..core.database import DatabaseManager, get_db_manager
from ..core.utils import DateTimeUtils, ValidationUtils

logger = logging.getLogger(__name__)

def ranking_key(entry: Dict[str, Any]):
    """Score descending, then time ascending; untimed entries sort last within a score"""
    time_taken = entry.get("time_taken")
    return (
        -(entry.get("score") or 0),
        time_taken is None,
        time_taken if time_taken is not None else 0
    )

class LeaderboardService:
    """Append-only leaderboard buckets keyed by (schedule_period, kind)"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def append(self, schedule_period: str, kind: str, subject_ref: Any, score: int,
               time_taken: Optional[int], submitted_at: Optional[datetime] = None):
        """Push one entry into the bucket, creating the bucket if needed"""
        entry = {
            "subject_ref": subject_ref,
            "score": score,
            "time_taken": time_taken,
            "submitted_at": submitted_at or DateTimeUtils.utcnow()
        }
        self.db_manager.push_leaderboard_entry(schedule_period, kind, entry)
        logger.info(f"🏆 Leaderboard {schedule_period}/{kind}: +{score} in {time_taken}s")

    def query(self, schedule_period: str, kind: str, page: int = 1,
              page_size: int = None) -> Dict[str, Any]:
        """Ranked, paginated view of one bucket with display fields joined in"""
        schedule_period = ValidationUtils.validate_schedule_period(schedule_period)
        kind = ValidationUtils.validate_quiz_kind(kind).value
        page, page_size = ValidationUtils.validate_pagination(
            page, page_size if page_size is not None else config.LEADERBOARD_PAGE_SIZE
        )

        leaderboard = self.db_manager.find_leaderboard(schedule_period, kind)
        if not leaderboard:
            return {"entries": [], "total": 0, "total_pages": 0, "current_page": page}

        ranked = sorted(leaderboard.get("entries", []), key=ranking_key)
        total = len(ranked)
        skip = (page - 1) * page_size
        window = ranked[skip:skip + page_size]

        return {
            "entries": self._with_display_fields(window, skip),
            "total": total,
            "total_pages": math.ceil(total / page_size),
            "current_page": page
        }

    def _with_display_fields(self, window: List[Dict[str, Any]], skip: int) -> List[Dict[str, Any]]:
        profiles = self.db_manager.find_profiles(entry.get("subject_ref") for entry in window)
        users = self.db_manager.find_users(profile.get("userId") for profile in profiles.values())

        rows = []
        for index, entry in enumerate(window):
            profile = profiles.get(entry.get("subject_ref")) or {}
            user = users.get(profile.get("userId")) or {}
            rows.append({
                "rank": skip + index + 1,
                "score": entry.get("score"),
                "time_taken": entry.get("time_taken"),
                "profile_id": str(entry["subject_ref"]) if entry.get("subject_ref") is not None else None,
                "user_id": str(profile["userId"]) if profile.get("userId") is not None else None,
                "first_name": user.get("firstName"),
                "last_name": user.get("lastName"),
                "photo": profile.get("photo")
            })
        return rows

# Singleton pattern for leaderboard service
_leaderboard_service = None

def get_leaderboard_service() -> LeaderboardService:
    """Get leaderboard service instance (singleton)"""
    global _leaderboard_service
    if _leaderboard_service is None:
        _leaderboard_service = LeaderboardService(get_db_manager())
    return _leaderboard_service
