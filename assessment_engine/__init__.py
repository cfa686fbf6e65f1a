# assessment_engine/__init__.py
"""
Assessment Engine - interview, aptitude and weekly quiz sessions
with AI-generated questions, retrying generation gateway and leaderboards
"""

__version__ = "1.0.0"
__description__ = "Assessment-session engine with AI-powered question generation"

from .core.config import config

__all__ = ["config"]
