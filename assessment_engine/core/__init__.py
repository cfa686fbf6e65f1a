"""
Core module containing configuration, errors, database, AI services, and utilities
"""

from .config import config
from .database import DatabaseManager, get_db_manager
from .ai_services import AIService, GenerationGateway, get_ai_service

__all__ = [
    "config",
    "DatabaseManager",
    "get_db_manager",
    "AIService",
    "GenerationGateway",
    "get_ai_service"
]
