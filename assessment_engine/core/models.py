# assessment_engine/core/models.py
"""
Shared enums and value objects for sessions, quizzes and leaderboards
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionMode(str, Enum):
    INTERVIEW = "interview"
    APTITUDE = "aptitude"


class InterviewType(str, Enum):
    TECHNICAL = "Technical"
    HR = "HR"
    CODING = "Coding"


class InterviewLevel(str, Enum):
    BASIC = "Basic"
    MEDIUM = "Medium"
    ADVANCED = "Advanced"


class QuizKind(str, Enum):
    SCHEDULED = "SCHEDULED"
    GLOBAL = "GLOBAL"


class QuizCategory(str, Enum):
    TECHNICAL = "TECHNICAL"
    SOFT_SKILL = "SOFT_SKILL"
    INDUSTRY_KNOWLEDGE = "INDUSTRY_KNOWLEDGE"


class Difficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


@dataclass(frozen=True)
class InterviewEvaluation:
    """Parsed `Score:` / `Suggestion:` reply; score is None when unresolvable"""
    score: Optional[int]
    suggestion: str


@dataclass(frozen=True)
class AptitudeEvaluation:
    """Parsed `Correct Answer:` / `Explanation:` reply"""
    correct_answer: str
    explanation: str


@dataclass(frozen=True)
class QuizMeta:
    topic: str
    category: str
    user_segment: str
