# assessment_engine/api/routes.py
"""
Thin HTTP layer over the services.

Handlers are plain ``def`` so FastAPI runs them in its threadpool; the
services block on generation calls and backoff delays.
Errors are mapped to status codes by the handlers registered in main.py.
"""

import logging

from fastapi import APIRouter, Depends, Query

from ..core.config import config
from ..core.models import SessionMode
from ..core.utils import DateTimeUtils
from ..services.leaderboard_service import LeaderboardService, get_leaderboard_service
from ..services.quiz_service import QuizService, get_quiz_service
from ..services.session_service import SessionService, get_session_service
from .schemas import (
    FinishSessionRequest, StartAptitudeRequest, StartInterviewRequest,
    SubmitAnswerRequest, SubmitQuizRequest
)

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/")
def home():
    """Home endpoint"""
    return {
        "service": config.API_TITLE,
        "version": config.API_VERSION,
        "status": "operational"
    }

# ==================== Sessions ====================
@router.post("/api/interviews/start")
def start_interview(request: StartInterviewRequest,
                    sessions: SessionService = Depends(get_session_service)):
    return sessions.start_interview(
        request.user_id, request.interview_type, request.level, request.field, request.language
    )

@router.post("/api/aptitude/start")
def start_aptitude(request: StartAptitudeRequest,
                   sessions: SessionService = Depends(get_session_service)):
    return sessions.start_aptitude(request.user_id, request.category, request.level)

@router.get("/api/sessions/{session_id}/question")
def next_question(session_id: str, sessions: SessionService = Depends(get_session_service)):
    return sessions.next_question(session_id)

@router.post("/api/sessions/answer")
def submit_answer(request: SubmitAnswerRequest,
                  sessions: SessionService = Depends(get_session_service)):
    return sessions.submit_answer(request.session_id, request.question, request.user_answer)

@router.post("/api/sessions/finish")
def finish_session(request: FinishSessionRequest,
                   sessions: SessionService = Depends(get_session_service)):
    return sessions.finish_session(request.session_id)

@router.get("/api/sessions/user/{user_id}")
def list_sessions(user_id: str, mode: SessionMode = SessionMode.INTERVIEW,
                  sessions: SessionService = Depends(get_session_service)):
    results = sessions.list_sessions(user_id, mode.value)
    return {"count": len(results), "sessions": results}

@router.get("/api/sessions/{session_id}")
def get_session(session_id: str, sessions: SessionService = Depends(get_session_service)):
    return sessions.get_session(session_id)

# ==================== Quizzes ====================
@router.get("/api/quiz/home/user/{user_id}")
def weekly_quiz(user_id: str, quizzes: QuizService = Depends(get_quiz_service)):
    return quizzes.get_weekly_quiz_for_user(user_id)

@router.get("/api/quiz/global")
def global_quiz(quizzes: QuizService = Depends(get_quiz_service)):
    return quizzes.get_global_quiz()

@router.get("/api/quiz/leaderboard")
def leaderboard(kind: str, period: str = None, page: int = 1,
                page_size: int = Query(default=None, alias="pageSize"),
                leaderboards: LeaderboardService = Depends(get_leaderboard_service)):
    return leaderboards.query(period or DateTimeUtils.schedule_period(), kind, page, page_size)

@router.get("/api/quiz/{quiz_id}/questions")
def quiz_questions(quiz_id: str, quizzes: QuizService = Depends(get_quiz_service)):
    return quizzes.get_quiz_questions(quiz_id)

@router.post("/api/quiz/{quiz_id}/submit")
def submit_quiz(quiz_id: str, request: SubmitQuizRequest,
                quizzes: QuizService = Depends(get_quiz_service)):
    result = quizzes.submit_quiz(quiz_id, request.answers, request.started_at, request.user_id)
    return {"message": "Quiz submitted successfully", **result}
