# assessment_engine/core/parsers.py
"""
Strict parsers turning generated text into structured data.

Each parser either returns a complete result or raises MalformedResponse
carrying the raw text. Nothing is defaulted or guessed.
"""

import json
import logging
import re
from typing import Any, Dict

from .exceptions import MalformedResponse
from .models import (
    AptitudeEvaluation, Difficulty, InterviewEvaluation, QuizCategory, QuizMeta
)

logger = logging.getLogger(__name__)

SCORE_PATTERN = re.compile(r"Score:[ \t]*(.*)", re.IGNORECASE)
SUGGESTION_PATTERN = re.compile(r"Suggestion:\s*(.+)", re.IGNORECASE | re.DOTALL)
CORRECT_ANSWER_PATTERN = re.compile(r"Correct Answer:[ \t]*(.*)", re.IGNORECASE)
EXPLANATION_PATTERN = re.compile(r"Explanation:\s*(.+)", re.IGNORECASE | re.DOTALL)
# The evaluator labels its own line, so a letter followed by text is still a letter
CORRECT_LETTER_PATTERN = re.compile(r"^\(?([A-D])(?:[\s).:]|$)", re.IGNORECASE)
# A user answer only names an option as a bare letter or "A)", "(A)", "A.", "A:"
OPTION_LETTER_PATTERN = re.compile(r"^\(?([A-D])(?:[).:]|$)", re.IGNORECASE)

MAX_INTERVIEW_SCORE = 10

class ResponseParser:
    """Parsers for every generation reply format"""

    @staticmethod
    def extract_json(raw: str) -> Dict[str, Any]:
        """Parse the outermost {...} block embedded in free text"""
        start = raw.find("{")
        end = raw.rfind("}")
        if start == -1 or end == -1 or end < start:
            raise MalformedResponse("No JSON object found in response", raw=raw)

        try:
            data = json.loads(raw[start:end + 1])
        except json.JSONDecodeError as e:
            raise MalformedResponse(f"Invalid JSON in response: {e}", raw=raw) from e

        if not isinstance(data, dict):
            raise MalformedResponse("Response JSON is not an object", raw=raw)
        return data

    @staticmethod
    def parse_plain_question(raw: str) -> str:
        question = (raw or "").strip()
        if not question:
            raise MalformedResponse("Empty question text", raw=raw)
        return question

    @staticmethod
    def parse_quiz_question(raw: str, difficulty: str = Difficulty.MEDIUM.value) -> Dict[str, Any]:
        """Parse and integrity-check one multiple-choice question"""
        data = ResponseParser.extract_json(raw)

        question = data.get("question")
        options = data.get("options")
        answer = data.get("answer")
        explanation = data.get("explanation")

        if not isinstance(question, str) or not question.strip():
            raise MalformedResponse("Question text missing", raw=raw)

        if not isinstance(options, list) or len(options) != 4:
            raise MalformedResponse("Question must have exactly 4 options", raw=raw)

        if not all(isinstance(option, str) and option.strip() for option in options):
            raise MalformedResponse("Options must be non-empty strings", raw=raw)

        if not isinstance(answer, str) or not answer:
            raise MalformedResponse("Answer missing", raw=raw)

        if answer not in options:
            raise MalformedResponse("Answer does not match any option", raw=raw)

        if not isinstance(explanation, str) or not explanation.strip():
            raise MalformedResponse("Explanation missing", raw=raw)

        return {
            "question": question.strip(),
            "options": options,
            "answer": answer,
            "explanation": explanation.strip(),
            "difficulty": difficulty,
        }

    @staticmethod
    def parse_quiz_meta(raw: str) -> QuizMeta:
        data = ResponseParser.extract_json(raw)

        topic = data.get("topic")
        category = data.get("category")
        user_segment = data.get("userSegment")

        if not all(isinstance(v, str) and v.strip() for v in (topic, category, user_segment)):
            raise MalformedResponse("Incomplete quiz metadata", raw=raw)

        category = category.strip().upper()
        if category not in {c.value for c in QuizCategory}:
            raise MalformedResponse(f"Unknown quiz category: {category}", raw=raw)

        return QuizMeta(topic=topic.strip(), category=category, user_segment=user_segment.strip())

    @staticmethod
    def parse_generic_topic(raw: str) -> str:
        data = ResponseParser.extract_json(raw)
        topic = data.get("topic")
        if not isinstance(topic, str) or not topic.strip():
            raise MalformedResponse("Missing topic", raw=raw)
        return topic.strip()

    @staticmethod
    def parse_interview_evaluation(raw: str) -> InterviewEvaluation:
        """Parse a `Score:` / `Suggestion:` reply.

        A present Score label without a leading integer yields score=None;
        a missing label is a failure.
        """
        text = raw or ""
        score_match = SCORE_PATTERN.search(text)
        if not score_match:
            raise MalformedResponse("Missing 'Score:' marker", raw=raw)

        suggestion_match = SUGGESTION_PATTERN.search(text)
        if not suggestion_match or not suggestion_match.group(1).strip():
            raise MalformedResponse("Missing 'Suggestion:' marker", raw=raw)

        digits = re.match(r"(\d+)", score_match.group(1).strip(" *\t"))
        score = int(digits.group(1)) if digits else None
        if score is not None and score > MAX_INTERVIEW_SCORE:
            raise MalformedResponse(f"Score {score} outside 0-{MAX_INTERVIEW_SCORE}", raw=raw)

        if score is None:
            logger.warning("Evaluation reply has no resolvable score; recording it as unscored")

        return InterviewEvaluation(score=score, suggestion=suggestion_match.group(1).strip())

    @staticmethod
    def parse_aptitude_evaluation(raw: str) -> AptitudeEvaluation:
        text = raw or ""
        answer_match = CORRECT_ANSWER_PATTERN.search(text)
        if not answer_match:
            raise MalformedResponse("Missing 'Correct Answer:' marker", raw=raw)

        letter = CORRECT_LETTER_PATTERN.match(answer_match.group(1).strip(" *\t"))
        if not letter:
            raise MalformedResponse("Correct answer is not one of A, B, C, D", raw=raw)

        explanation_match = EXPLANATION_PATTERN.search(text)
        if not explanation_match or not explanation_match.group(1).strip():
            raise MalformedResponse("Missing 'Explanation:' marker", raw=raw)

        return AptitudeEvaluation(
            correct_answer=letter.group(1).upper(),
            explanation=explanation_match.group(1).strip()
        )

    @staticmethod
    def option_letter(answer: str) -> str:
        """Leading option letter of a user's aptitude answer, or '' if none"""
        match = OPTION_LETTER_PATTERN.match((answer or "").strip())
        return match.group(1).upper() if match else ""
