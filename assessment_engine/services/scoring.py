# assessment_engine/services/scoring.py
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..core.database import DatabaseManager
from ..core.exceptions import AlreadyCompleted
from ..core.utils import DateTimeUtils
from .leaderboard_service import LeaderboardService

logger = logging.getLogger(__name__)

def normalize_answer(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip().lower()

def leaderboard_pending(quiz: Dict[str, Any]) -> bool:
    """Completed, but its leaderboard entry has not been written yet"""
    return bool(quiz.get("is_completed")) and quiz.get("leaderboard_recorded") is False

@dataclass
class GradeResult:
    score: int
    time_taken: int
    submitted_at: datetime
    total_questions: int
    trace: List[Dict[str, Any]] = field(default_factory=list)

class ScoringEngine:
    """Grades a quiz exactly once and records the result"""

    def __init__(self, db_manager: DatabaseManager, leaderboard: LeaderboardService):
        self.db_manager = db_manager
        self.leaderboard = leaderboard

    @staticmethod
    def grade(quiz: Dict[str, Any], submitted_answers: Sequence[Any],
              started_at: Optional[datetime] = None,
              submitted_at: Optional[datetime] = None) -> GradeResult:
        """Count case/whitespace-insensitive exact matches; no partial credit"""
        if quiz.get("is_completed"):
            raise AlreadyCompleted("Quiz already submitted.")

        submitted_at = submitted_at or DateTimeUtils.utcnow()
        trace = []
        score = 0

        for index, question in enumerate(quiz.get("questions", [])):
            user_answer = submitted_answers[index] if index < len(submitted_answers) else None
            is_correct = normalize_answer(user_answer) == normalize_answer(question["answer"])
            if is_correct:
                score += 1
            trace.append({
                "question": question["question"],
                "user_answer": user_answer,
                "correct_answer": question["answer"],
                "explanation": question.get("explanation", ""),
                "is_correct": is_correct
            })

        # Caller-supplied start times are trusted as given, even if that goes negative
        start = started_at if started_at is not None else quiz["created_at"]
        time_taken = DateTimeUtils.elapsed_seconds(start, submitted_at)

        return GradeResult(
            score=score,
            time_taken=time_taken,
            submitted_at=submitted_at,
            total_questions=len(quiz.get("questions", [])),
            trace=trace
        )

    def submit(self, quiz: Dict[str, Any], submitted_answers: Sequence[Any],
               subject_ref: Any, started_at: Optional[datetime] = None) -> GradeResult:
        """Grade, write the write-once fields, then append to the period's leaderboard"""
        result = self.grade(quiz, submitted_answers, started_at)

        recorded = self.db_manager.complete_quiz(
            quiz["_id"], result.score, result.time_taken, result.submitted_at, result.trace, subject_ref
        )
        if not recorded:
            logger.warning(f"Quiz {quiz['_id']} was completed by a concurrent submission")
            raise AlreadyCompleted("Quiz already submitted.")

        self._record_leaderboard(quiz, subject_ref, result.score, result.time_taken, result.submitted_at)
        logger.info(f"✅ Quiz {quiz['_id']} graded: {result.score}/{result.total_questions}")
        return result

    def resume(self, quiz: Dict[str, Any]) -> GradeResult:
        """Write the leaderboard entry a completed quiz still owes; the grade itself stands"""
        if not leaderboard_pending(quiz):
            raise AlreadyCompleted("Quiz already submitted.")

        logger.warning(f"Quiz {quiz['_id']} is graded but missing from the leaderboard, recording it now")
        self._record_leaderboard(
            quiz, quiz.get("submitted_by"), quiz["score"], quiz["time_taken"], quiz["completed_at"]
        )
        return GradeResult(
            score=quiz["score"],
            time_taken=quiz["time_taken"],
            submitted_at=quiz["completed_at"],
            total_questions=len(quiz.get("questions", [])),
            trace=quiz.get("answers", [])
        )

    def _record_leaderboard(self, quiz: Dict[str, Any], subject_ref: Any, score: int,
                            time_taken: int, submitted_at: datetime):
        if not self.db_manager.claim_leaderboard_entry(quiz["_id"]):
            logger.info(f"Leaderboard entry for quiz {quiz['_id']} already recorded")
            return

        try:
            self.leaderboard.append(
                quiz["schedule_period"], quiz["kind"], subject_ref, score, time_taken, submitted_at
            )
        except Exception:
            # Leave the entry owed so a resubmission can write it
            logger.error(f"❌ Leaderboard append failed for quiz {quiz['_id']}")
            self.db_manager.release_leaderboard_entry(quiz["_id"])
            raise
