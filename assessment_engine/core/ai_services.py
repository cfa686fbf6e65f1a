# assessment_engine/core/ai_services.py
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from groq import Groq, APIStatusError, GroqError

from .config import config
from .exceptions import GenerationError, ServiceOverloaded
from .models import AptitudeEvaluation, Difficulty, InterviewEvaluation, QuizMeta
from .parsers import ResponseParser
from .prompts import PromptTemplates

logger = logging.getLogger(__name__)

OVERLOADED_STATUS = 503

def is_overloaded(error: Exception) -> bool:
    """True for the single retryable failure class: provider overloaded"""
    return isinstance(error, APIStatusError) and error.status_code == OVERLOADED_STATUS

class GenerationGateway:
    """Sole point of contact with the text-generation service.

    Retries only on overload, with exponential backoff starting at
    ``base_delay`` seconds. Holds no state between calls.
    """

    def __init__(self, client, model: str = None, max_attempts: int = None,
                 base_delay: float = None, sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.model = model or config.GROQ_MODEL
        self.max_attempts = max_attempts if max_attempts is not None else config.GENERATION_MAX_ATTEMPTS
        self.base_delay = base_delay if base_delay is not None else config.GENERATION_BACKOFF_SECONDS
        self._sleep = sleep

    def generate(self, prompt: str, temperature: float = None, max_tokens: int = None,
                 system_instruction: Optional[str] = None) -> str:
        """Send one prompt and return the reply text"""
        if temperature is None:
            temperature = config.GROQ_TEMPERATURE
        if max_tokens is None:
            max_tokens = config.GROQ_MAX_TOKENS

        messages: List[Dict[str, str]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        delay = self.base_delay
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.debug(f"Generation attempt {attempt}/{self.max_attempts}")
                completion = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_completion_tokens=max_tokens
                )
            except GroqError as e:
                if not is_overloaded(e):
                    logger.error(f"❌ Generation failed (not retryable): {e}")
                    raise GenerationError(f"Generation failed: {e}") from e

                last_error = e
                if attempt < self.max_attempts:
                    logger.warning(
                        f"Generation service overloaded. Retrying in {delay}s... [Attempt {attempt}]"
                    )
                    self._sleep(delay)
                    delay *= 2
                continue

            if not completion.choices:
                raise GenerationError("Generation service returned no choices")

            return (completion.choices[0].message.content or "").strip()

        logger.error(f"❌ Generation service still overloaded after {self.max_attempts} attempts")
        raise ServiceOverloaded(
            f"Generation service overloaded, try again later: {last_error}",
            attempts=self.max_attempts
        ) from last_error

class AIService:
    """Question generation and answer evaluation on top of the gateway"""

    def __init__(self, gateway: GenerationGateway):
        self.gateway = gateway

    # ==================== Sessions ====================
    def generate_interview_question(self, interview_type: str, level: str,
                                    field: str = None, language: str = None) -> str:
        prompt = PromptTemplates.interview_question_prompt(interview_type, level, field, language)
        return ResponseParser.parse_plain_question(self.gateway.generate(prompt))

    def evaluate_interview_answer(self, question: str, answer: str) -> InterviewEvaluation:
        prompt = PromptTemplates.interview_evaluation_prompt(question, answer)
        response = self.gateway.generate(prompt, temperature=config.EVALUATION_TEMPERATURE)
        logger.debug(f"Interview evaluation reply: {response}")
        return ResponseParser.parse_interview_evaluation(response)

    def generate_aptitude_question(self, category: str = None, level: str = None) -> str:
        prompt = PromptTemplates.aptitude_question_prompt(category, level)
        return ResponseParser.parse_plain_question(self.gateway.generate(prompt))

    def evaluate_aptitude_answer(self, question: str) -> AptitudeEvaluation:
        prompt = PromptTemplates.aptitude_evaluation_prompt(question)
        response = self.gateway.generate(prompt, temperature=config.EVALUATION_TEMPERATURE)
        logger.debug(f"Aptitude evaluation reply: {response}")
        return ResponseParser.parse_aptitude_evaluation(response)

    # ==================== Weekly quiz ====================
    def generate_quiz_meta(self, profile: Dict[str, Any]) -> QuizMeta:
        """Derive topic, category and user segment from a profile"""
        prompt = PromptTemplates.quiz_meta_prompt(
            profile.get("about", ""),
            profile.get("skills") or [],
            profile.get("education") or []
        )
        return ResponseParser.parse_quiz_meta(self.gateway.generate(prompt))

    def generate_generic_topic(self) -> str:
        return ResponseParser.parse_generic_topic(
            self.gateway.generate(PromptTemplates.generic_topic_prompt())
        )

    def generate_quiz_question(self, topic: str,
                               difficulty: str = Difficulty.MEDIUM.value) -> Dict[str, Any]:
        prompt = PromptTemplates.quiz_question_prompt(topic, difficulty)
        return ResponseParser.parse_quiz_question(self.gateway.generate(prompt), difficulty)

    def health_check(self) -> Dict[str, Any]:
        """Report gateway configuration without spending a generation call"""
        return {
            "status": "healthy" if self.gateway.client is not None else "error",
            "model": self.gateway.model,
            "max_attempts": self.gateway.max_attempts,
            "base_delay_seconds": self.gateway.base_delay
        }

def create_groq_client() -> Groq:
    """Build the live client; the gateway owns retries so the SDK's are disabled"""
    if not config.GROQ_API_KEY:
        raise GenerationError("GROQ_API_KEY not provided")
    return Groq(api_key=config.GROQ_API_KEY, timeout=config.GROQ_TIMEOUT, max_retries=0)

# Singleton pattern for AI service
_ai_service = None

def get_ai_service() -> AIService:
    """Get AI service instance (singleton)"""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService(GenerationGateway(create_groq_client()))
        logger.info("✅ Groq generation gateway initialized")
    return _ai_service

def close_ai_service():
    """Close AI service instance"""
    global _ai_service
    if _ai_service:
        client = _ai_service.gateway.client
        if hasattr(client, "close"):
            client.close()
        _ai_service = None
