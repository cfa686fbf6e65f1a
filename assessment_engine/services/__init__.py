"""
Business logic services for sessions, quizzes, scoring and leaderboards
"""

from .session_service import SessionService, get_session_service
from .quiz_service import QuizService, get_quiz_service
from .leaderboard_service import LeaderboardService, get_leaderboard_service
from .scoring import ScoringEngine

__all__ = [
    "SessionService",
    "get_session_service",
    "QuizService",
    "get_quiz_service",
    "LeaderboardService",
    "get_leaderboard_service",
    "ScoringEngine"
]
