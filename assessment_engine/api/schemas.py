# assessment_engine/api/schemas.py
"""
Pydantic request models; camelCase aliases match the existing frontend
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartInterviewRequest(RequestModel):
    user_id: str = Field(alias="userId")
    interview_type: str = Field(alias="interviewType")
    level: str
    field: Optional[str] = None
    language: Optional[str] = None


class StartAptitudeRequest(RequestModel):
    user_id: str = Field(alias="userId")
    category: Optional[str] = None
    level: Optional[str] = None


class SubmitAnswerRequest(RequestModel):
    session_id: str = Field(alias="sessionId")
    question: str
    user_answer: str = Field(alias="userAnswer")


class FinishSessionRequest(RequestModel):
    session_id: str = Field(alias="sessionId")


class SubmitQuizRequest(RequestModel):
    answers: List[Optional[str]]
    started_at: Optional[datetime] = Field(default=None, alias="startedAt")
    user_id: Optional[str] = Field(default=None, alias="userId")
