# assessment_engine/services/session_service.py
"""
Session lifecycle shared by interview and aptitude sessions.

States are Active (``is_finished`` false) and Finished. Guards on
existence and state run before any generation call, and every write is
conditional on the session still being active.
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.ai_services import AIService, get_ai_service
from ..core.config import config
from ..core.database import DatabaseManager, get_db_manager
from ..core.exceptions import NotFound, SessionFinished
from ..core.models import SessionMode
from ..core.parsers import ResponseParser
from ..core.utils import DateTimeUtils, ValidationUtils, serialize_document

logger = logging.getLogger(__name__)

class SessionService:
    """Start, question, answer and finish assessment sessions"""

    def __init__(self, db_manager: DatabaseManager, ai_service: AIService):
        self.db_manager = db_manager
        self.ai_service = ai_service

    # ==================== Start ====================
    def start_interview(self, owner_id: str, interview_type: str, level: str,
                        field: Optional[str] = None, language: Optional[str] = None) -> Dict[str, Any]:
        interview_type = ValidationUtils.validate_interview_type(interview_type).value
        level = ValidationUtils.validate_interview_level(level).value
        return self.start_session(owner_id, {
            "mode": SessionMode.INTERVIEW.value,
            "kind": interview_type,
            "level": level,
            "field": field or config.DEFAULT_FIELD,
            "language": language
        })

    def start_aptitude(self, owner_id: str, category: Optional[str] = None,
                       level: Optional[str] = None) -> Dict[str, Any]:
        return self.start_session(owner_id, {
            "mode": SessionMode.APTITUDE.value,
            "kind": category or config.DEFAULT_APTITUDE_CATEGORY,
            "level": level or config.DEFAULT_APTITUDE_LEVEL,
            "field": None,
            "language": None
        })

    def start_session(self, owner_id: str, classification: Dict[str, Any]) -> Dict[str, Any]:
        """Generate the first question, then persist a new active session"""
        owner_id = ValidationUtils.require_text(owner_id, "owner_id")
        mode = ValidationUtils.validate_session_mode(classification.get("mode"))

        logger.info(f"🚀 Starting {mode.value} session for {owner_id}")
        question = self._generate_question(classification)

        now = DateTimeUtils.utcnow()
        session = {
            "owner_id": owner_id,
            "mode": mode.value,
            "kind": classification.get("kind"),
            "level": classification.get("level"),
            "field": classification.get("field"),
            "language": classification.get("language"),
            "answers": [],
            "average_score": 0,
            "is_finished": False,
            "created_at": now,
            "updated_at": now
        }
        session_id = self.db_manager.insert_session(session)

        logger.info(f"✅ Session started: {session_id}")
        return {"session_id": str(session_id), "question": question}

    # ==================== Active-session operations ====================
    def next_question(self, session_id: str) -> Dict[str, Any]:
        """One more question for the session; the session itself is not changed"""
        session = self._load_active(session_id)
        return {"question": self._generate_question(session)}

    def submit_answer(self, session_id: str, question: str, user_answer: str) -> Dict[str, Any]:
        """Evaluate one answer, append it, and recompute the running average"""
        question = ValidationUtils.require_text(question, "question")
        user_answer = ValidationUtils.require_text(user_answer, "user_answer")
        session = self._load_active(session_id)

        record = self._evaluate(session["mode"], question, user_answer)

        # Average comes back from the write itself so concurrent answers are all counted
        updated = self.db_manager.append_session_answer(session["_id"], record)
        if updated is None:
            logger.warning(f"Session {session['_id']} finished while answer was being evaluated")
            raise SessionFinished("This session has already been finished. No more answers are accepted.")

        total_answers = len(updated.get("answers", []))
        running_average = updated["average_score"]
        logger.info(f"📝 Answer {total_answers} recorded for session {session['_id']} (avg {running_average})")
        result = {
            "score": record["score"],
            "is_correct": record["is_correct"],
            "feedback": record["feedback"],
            "average_score": running_average,
            "total_answers": total_answers
        }
        if "correct_answer" in record:
            result["correct_answer"] = record["correct_answer"]
        return result

    def finish_session(self, session_id: str) -> Dict[str, Any]:
        """Seal the session and summarize it"""
        session = self._load_active(session_id)

        finished = self.db_manager.finish_session(session["_id"])
        if finished is None:
            raise SessionFinished("This session is already finished. You cannot finish it again.")

        answers = finished.get("answers", [])
        final_average = finished["average_score"]

        feedback = "\n".join(
            f"Q{i}: {answer.get('feedback', '')}" for i, answer in enumerate(answers, 1)
        )
        logger.info(f"🏁 Session finished: {session['_id']} ({len(answers)} answers)")
        return {
            "total_questions": len(answers),
            "average_score": final_average,
            "feedback": feedback
        }

    # ==================== Reads ====================
    def list_sessions(self, owner_id: str, mode: str) -> List[Dict[str, Any]]:
        owner_id = ValidationUtils.require_text(owner_id, "owner_id")
        mode = ValidationUtils.validate_session_mode(mode)
        return serialize_document(self.db_manager.list_sessions(owner_id, mode.value))

    def get_session(self, session_id: str) -> Dict[str, Any]:
        return serialize_document(self._load(session_id))

    # ==================== Internals ====================
    def _load(self, session_id: str) -> Dict[str, Any]:
        object_id = ValidationUtils.validate_object_id(session_id, "session id")
        session = self.db_manager.find_session(object_id)
        if not session:
            raise NotFound("Session not found")
        return session

    def _load_active(self, session_id: str) -> Dict[str, Any]:
        session = self._load(session_id)
        if session.get("is_finished"):
            logger.warning(f"Rejected operation on finished session {session_id}")
            raise SessionFinished("This session is already finished.")
        return session

    def _generate_question(self, classification: Dict[str, Any]) -> str:
        if classification.get("mode") == SessionMode.APTITUDE.value:
            return self.ai_service.generate_aptitude_question(
                classification.get("kind"), classification.get("level")
            )
        return self.ai_service.generate_interview_question(
            classification.get("kind"),
            classification.get("level"),
            classification.get("field"),
            classification.get("language")
        )

    def _evaluate(self, mode: str, question: str, user_answer: str) -> Dict[str, Any]:
        record = {
            "question": question,
            "user_answer": user_answer,
            "answered_at": DateTimeUtils.utcnow()
        }

        if mode == SessionMode.APTITUDE.value:
            evaluation = self.ai_service.evaluate_aptitude_answer(question)
            is_correct = ResponseParser.option_letter(user_answer) == evaluation.correct_answer
            record.update({
                "score": 1 if is_correct else 0,
                "is_correct": is_correct,
                "correct_answer": evaluation.correct_answer,
                "feedback": evaluation.explanation
            })
        else:
            evaluation = self.ai_service.evaluate_interview_answer(question, user_answer)
            record.update({
                "score": evaluation.score,
                "is_correct": None,
                "feedback": evaluation.suggestion
            })
        return record

# Singleton pattern for session service
_session_service = None

def get_session_service() -> SessionService:
    """Get session service instance (singleton)"""
    global _session_service
    if _session_service is None:
        _session_service = SessionService(get_db_manager(), get_ai_service())
    return _session_service
