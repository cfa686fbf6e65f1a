# assessment_engine/services/quiz_service.py
"""
Weekly quiz issuing and submission.

At most one quiz exists per (kind, subject_ref, schedule_period). The
database enforces that with a unique index; losing an insert race means
another request already issued the quiz, so the winner is re-read.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..core.ai_services import AIService, get_ai_service
from ..core.config import config
from ..core.database import DatabaseManager, get_db_manager
from ..core.exceptions import (
    AlreadyCompleted, DuplicateKey, InvalidSubjectReference, NotFound, ValidationError
)
from ..core.models import QuizCategory, QuizKind, QuizMeta
from ..core.utils import DateTimeUtils, ValidationUtils
from .leaderboard_service import get_leaderboard_service
from .scoring import GradeResult, ScoringEngine, leaderboard_pending

logger = logging.getLogger(__name__)

GLOBAL_USER_SEGMENT = "ALL"

def public_questions(quiz: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Questions without canonical answers or explanations"""
    return [
        {
            "index": index,
            "question": q["question"],
            "options": q["options"],
            "difficulty": q.get("difficulty")
        }
        for index, q in enumerate(quiz.get("questions", []))
    ]

class QuizService:
    """Issue, read and submit weekly quizzes"""

    def __init__(self, db_manager: DatabaseManager, ai_service: AIService, scoring: ScoringEngine):
        self.db_manager = db_manager
        self.ai_service = ai_service
        self.scoring = scoring

    # ==================== Issuing ====================
    def get_or_create_quiz(self, kind: str, subject_ref: Any = None,
                           schedule_period: Optional[str] = None) -> Tuple[Dict[str, Any], bool]:
        """Return (quiz, created) for the period key, generating it at most once"""
        kind = ValidationUtils.validate_quiz_kind(kind)
        if kind is QuizKind.SCHEDULED and subject_ref is None:
            raise ValidationError("Scheduled quizzes need a subject reference")
        if kind is QuizKind.GLOBAL and subject_ref is not None:
            raise ValidationError("Global quizzes have no subject reference")

        # Fixed at request time so the quiz stays tied to this period
        if schedule_period is None:
            schedule_period = DateTimeUtils.schedule_period()
        else:
            schedule_period = ValidationUtils.validate_schedule_period(schedule_period)

        existing = self.db_manager.find_quiz_by_key(kind.value, subject_ref, schedule_period)
        if existing:
            return existing, False

        meta = self._quiz_meta(kind, subject_ref)
        questions = [
            self.ai_service.generate_quiz_question(meta.topic)
            for _ in range(config.QUESTIONS_PER_QUIZ)
        ]

        quiz = {
            "kind": kind.value,
            "subject_ref": subject_ref,
            "schedule_period": schedule_period,
            "topic": meta.topic,
            "category": meta.category,
            "user_segment": meta.user_segment,
            "questions": questions,
            "is_completed": False,
            "score": None,
            "time_taken": None,
            "completed_at": None,
            "answers": [],
            "created_at": DateTimeUtils.utcnow()
        }

        try:
            quiz["_id"] = self.db_manager.insert_quiz(quiz)
        except DuplicateKey:
            logger.warning(f"Quiz for {kind.value}/{subject_ref}/{schedule_period} issued concurrently, re-reading")
            winner = self.db_manager.find_quiz_by_key(kind.value, subject_ref, schedule_period)
            if winner is None:
                raise
            return winner, False

        logger.info(f"✅ Quiz issued: {quiz['_id']} ({kind.value}, {schedule_period}, topic '{meta.topic}')")
        return quiz, True

    def get_weekly_quiz_for_user(self, user_id: str) -> Dict[str, Any]:
        """Scheduled quiz for the user's profile in the current period"""
        profile = self._profile_for_user(user_id)
        quiz, created = self.get_or_create_quiz(QuizKind.SCHEDULED.value, profile["_id"])
        return self._summary(quiz, created)

    def get_global_quiz(self) -> Dict[str, Any]:
        quiz, created = self.get_or_create_quiz(QuizKind.GLOBAL.value)
        return self._summary(quiz, created)

    # ==================== Reads ====================
    def get_quiz_questions(self, quiz_id: str) -> Dict[str, Any]:
        quiz = self._load(quiz_id)
        questions = public_questions(quiz)
        return {"total_questions": len(questions), "questions": questions}

    # ==================== Submission ====================
    def submit_quiz(self, quiz_id: str, answers: List[Any], started_at: Optional[datetime] = None,
                    user_id: Optional[str] = None) -> Dict[str, Any]:
        """Grade a quiz once and record it on its period's leaderboard"""
        if not isinstance(answers, list):
            raise ValidationError("answers must be a list")

        quiz = self._load(quiz_id)
        if leaderboard_pending(quiz):
            # A resubmission finishes recording the original grade; new answers are ignored
            return self._result(self.scoring.resume(quiz))
        if quiz.get("is_completed"):
            raise AlreadyCompleted("Quiz already submitted.")

        if quiz["kind"] == QuizKind.GLOBAL.value:
            if not user_id:
                raise ValidationError("user_id is required to submit a global quiz")
            subject = self._profile_for_user(user_id)
        else:
            subject = self.db_manager.find_profile(quiz["subject_ref"]) if quiz.get("subject_ref") else None
            if not subject:
                raise InvalidSubjectReference("Quiz subject profile missing or invalid")

        return self._result(self.scoring.submit(quiz, answers, subject["_id"], started_at))

    # ==================== Internals ====================
    def _quiz_meta(self, kind: QuizKind, subject_ref: Any) -> QuizMeta:
        if kind is QuizKind.GLOBAL:
            topic = self.ai_service.generate_generic_topic()
            return QuizMeta(topic=topic, category=QuizCategory.SOFT_SKILL.value,
                            user_segment=GLOBAL_USER_SEGMENT)

        profile = self.db_manager.find_profile(subject_ref)
        if not profile:
            raise NotFound("Profile not found")
        return self.ai_service.generate_quiz_meta(profile)

    def _profile_for_user(self, user_id: str) -> Dict[str, Any]:
        user_id = ValidationUtils.require_text(user_id, "user_id")
        profile = self.db_manager.find_profile_by_user(user_id)
        if not profile:
            raise NotFound("Profile not found")
        return profile

    def _load(self, quiz_id: str) -> Dict[str, Any]:
        object_id = ValidationUtils.validate_object_id(quiz_id, "quiz id")
        quiz = self.db_manager.find_quiz(object_id)
        if not quiz:
            raise NotFound("Quiz not found")
        return quiz

    @staticmethod
    def _result(result: GradeResult) -> Dict[str, Any]:
        return {
            "score": result.score,
            "time_taken": result.time_taken,
            "total_questions": result.total_questions
        }

    @staticmethod
    def _summary(quiz: Dict[str, Any], created: bool) -> Dict[str, Any]:
        questions = public_questions(quiz)
        return {
            "quiz_id": str(quiz["_id"]),
            "kind": quiz["kind"],
            "topic": quiz["topic"],
            "category": quiz["category"],
            "user_segment": quiz["user_segment"],
            "schedule_period": quiz["schedule_period"],
            "is_completed": quiz.get("is_completed", False),
            "total_questions": len(questions),
            "questions": questions,
            "created": created
        }

# Singleton pattern for quiz service
_quiz_service = None

def get_quiz_service() -> QuizService:
    """Get quiz service instance (singleton)"""
    global _quiz_service
    if _quiz_service is None:
        db_manager = get_db_manager()
        scoring = ScoringEngine(db_manager, get_leaderboard_service())
        _quiz_service = QuizService(db_manager, get_ai_service(), scoring)
    return _quiz_service
