# assessment_engine/core/exceptions.py
"""
Error taxonomy for the assessment engine.

Every failure that crosses a service boundary is one of these classes so
the API layer can map it to a status code without inspecting messages.
"""

from typing import Optional


class AssessmentError(Exception):
    """Base class for all assessment engine errors"""


class GenerationError(AssessmentError):
    """The generation service failed in a way that is not worth retrying"""


class ServiceOverloaded(GenerationError):
    """The generation service stayed overloaded for the whole retry budget"""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class MalformedResponse(AssessmentError):
    """Generated text could not be turned into the expected structure"""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class NotFound(AssessmentError):
    """The requested entity does not exist"""


class StateConflict(AssessmentError):
    """The operation is valid in general but not in the entity's current state"""


class SessionFinished(StateConflict):
    """The session is finished and accepts no further changes"""


class AlreadyCompleted(StateConflict):
    """The quiz has already been graded"""


class ValidationError(AssessmentError, ValueError):
    """Missing or invalid input, rejected before any generation call"""


class InvalidSubjectReference(ValidationError):
    """A quiz points at a subject profile that cannot be resolved"""


class DuplicateKey(AssessmentError):
    """A storage uniqueness constraint rejected an insert"""
