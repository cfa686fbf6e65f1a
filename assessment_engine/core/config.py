# assessment_engine/core/config.py
import logging
import os
from typing import Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

class Config:
    """Centralized configuration management"""

    # ==================== API Configuration ====================
    API_TITLE = "Assessment Engine API"
    API_DESCRIPTION = "Interview, aptitude and weekly quiz sessions with AI-generated questions"
    API_VERSION = "1.0.0"

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    API_HOST = os.getenv("API_HOST", "0.0.0.0")
    API_PORT = int(os.getenv("API_PORT", "8070"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # ==================== Database Configuration ====================
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "assessments")
    MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

    # Collections
    SESSIONS_COLLECTION = os.getenv("SESSIONS_COLLECTION", "sessions")
    QUIZZES_COLLECTION = os.getenv("QUIZZES_COLLECTION", "quizzes")
    LEADERBOARDS_COLLECTION = os.getenv("LEADERBOARDS_COLLECTION", "leaderboards")
    PROFILES_COLLECTION = os.getenv("PROFILES_COLLECTION", "profiles")
    USERS_COLLECTION = os.getenv("USERS_COLLECTION", "users")

    # ==================== AI Service Configuration ====================
    # Groq settings
    GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_TIMEOUT = int(os.getenv("GROQ_TIMEOUT", "30"))
    GROQ_TEMPERATURE = float(os.getenv("GROQ_TEMPERATURE", "0.7"))
    GROQ_MAX_TOKENS = int(os.getenv("GROQ_MAX_TOKENS", "1024"))

    # Retry policy (only "service overloaded" failures are retried)
    GENERATION_MAX_ATTEMPTS = int(os.getenv("GENERATION_MAX_ATTEMPTS", "3"))
    GENERATION_BACKOFF_SECONDS = float(os.getenv("GENERATION_BACKOFF_SECONDS", "2.0"))

    # ==================== Evaluation Configuration ====================
    EVALUATION_TEMPERATURE = float(os.getenv("EVALUATION_TEMPERATURE", "0.3"))

    # ==================== Session Configuration ====================
    DEFAULT_FIELD = os.getenv("DEFAULT_FIELD", "Software Development")
    DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "JavaScript")
    DEFAULT_APTITUDE_CATEGORY = os.getenv("DEFAULT_APTITUDE_CATEGORY", "Logical Reasoning")
    DEFAULT_APTITUDE_LEVEL = os.getenv("DEFAULT_APTITUDE_LEVEL", "medium")

    # ==================== Quiz Configuration ====================
    QUESTIONS_PER_QUIZ = int(os.getenv("QUESTIONS_PER_QUIZ", "5"))

    # ==================== Leaderboard Configuration ====================
    LEADERBOARD_PAGE_SIZE = int(os.getenv("LEADERBOARD_PAGE_SIZE", "20"))
    LEADERBOARD_MAX_PAGE_SIZE = int(os.getenv("LEADERBOARD_MAX_PAGE_SIZE", "100"))

    # ==================== Environment Overrides ====================
    @classmethod
    def from_env(cls) -> 'Config':
        """Create config with environment variable overrides"""
        return cls()

    # ==================== Validation ====================
    def validate(self) -> Dict[str, Any]:
        """Validate configuration and return status"""
        issues = []

        if self.GENERATION_MAX_ATTEMPTS < 1:
            issues.append("GENERATION_MAX_ATTEMPTS must be at least 1")

        if self.GENERATION_BACKOFF_SECONDS < 0:
            issues.append("GENERATION_BACKOFF_SECONDS must not be negative")

        if self.QUESTIONS_PER_QUIZ < 1:
            issues.append("QUESTIONS_PER_QUIZ must be at least 1")

        if not (1 <= self.LEADERBOARD_PAGE_SIZE <= self.LEADERBOARD_MAX_PAGE_SIZE):
            issues.append("LEADERBOARD_PAGE_SIZE must be between 1 and LEADERBOARD_MAX_PAGE_SIZE")

        if not self.GROQ_API_KEY:
            issues.append("GROQ_API_KEY is required for question generation")

        return {
            "valid": len(issues) == 0,
            "issues": issues,
            "config_loaded": True,
            "model": self.GROQ_MODEL
        }

# Global configuration instance
config = Config.from_env()

# Validate on import
validation_result = config.validate()
if not validation_result["valid"]:
    logger.warning(f"Configuration issues: {validation_result['issues']}")
