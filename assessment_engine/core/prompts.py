# assessment_engine/core/prompts.py
from typing import List

from .config import config
from .models import InterviewType

class PromptTemplates:
    """Centralized prompt template management"""

    # ==================== Interview ====================
    @staticmethod
    def interview_question_prompt(interview_type: str, level: str,
                                  field: str = None, language: str = None) -> str:
        """Create prompt for one interview question of the given type"""
        field = (field or config.DEFAULT_FIELD).strip()
        language = language or config.DEFAULT_LANGUAGE
        kind = interview_type.lower()

        if kind == InterviewType.TECHNICAL.value.lower():
            return (f"Generate a {level}-level technical interview question in the field of {field}. "
                    "Only return the question. No explanation.")

        if kind == InterviewType.HR.value.lower():
            return (f"Generate a {level}-level HR interview question for a candidate in the field of {field}. "
                    "Only return the question. No description or advice.")

        if kind == InterviewType.CODING.value.lower():
            return (f"Generate a {level}-level coding problem in {language} for someone in the field of {field}. "
                    "Only return the question. No explanation or solution.")

        return (f"Generate a {level}-level interview question for a candidate in the field of {field}. "
                "Only return the question.")

    @staticmethod
    def interview_evaluation_prompt(question: str, answer: str) -> str:
        """Create prompt for scoring one interview answer"""
        return f"""Evaluate the following answer to the interview question.

Question: "{question}"
Answer: "{answer}"

Give a score from 0 to 10 based on correctness, clarity, and depth.
Also suggest how the candidate can improve.

Respond in this format:
Score: <number>
Suggestion: <text>"""

    # ==================== Aptitude ====================
    @staticmethod
    def aptitude_question_prompt(category: str = None, level: str = None) -> str:
        category = category or config.DEFAULT_APTITUDE_CATEGORY
        level = level or config.DEFAULT_APTITUDE_LEVEL
        return (f"Generate a {level}-level aptitude test question in the category of {category}. "
                "Provide four answer options labeled A, B, C, and D at the end of the question. "
                "Do not include the correct answer or explanation.")

    @staticmethod
    def aptitude_evaluation_prompt(question: str) -> str:
        return f"""Given the following aptitude question, identify the correct answer (A, B, C, or D) and provide a clear, concise explanation of why it is correct.

Question: "{question}"

Respond in this format:
Correct Answer: <A/B/C/D>
Explanation: <explanation>"""

    # ==================== Weekly quiz ====================
    @staticmethod
    def quiz_meta_prompt(about: str, skills: List[str], education: List[str]) -> str:
        """Create prompt deriving quiz topic/category/segment from a profile"""
        return f"""You are a smart career assistant AI. Based on the following user profile, suggest a quiz that would best suit their professional growth. Output JSON with three fields: topic, category, and userSegment.

Profile Details:
About: {about or ""}
Skills: {", ".join(skills)}
Education: {", ".join(education)}

Respond in this strict JSON format:
{{
  "topic": "string",
  "category": "TECHNICAL" | "SOFT_SKILL" | "INDUSTRY_KNOWLEDGE",
  "userSegment": "string"
}}"""

    @staticmethod
    def generic_topic_prompt() -> str:
        return """Suggest a general-purpose quiz topic that could help improve workplace knowledge or soft skills for any professional. Return JSON in this format:

{
  "topic": "string"
}"""

    @staticmethod
    def quiz_question_prompt(topic: str, difficulty: str = "MEDIUM") -> str:
        """Create prompt for one multiple-choice question"""
        return f"""Generate one multiple-choice quiz question on the topic "{topic}" with difficulty "{difficulty}".
Return ONLY strict JSON in this format:

{{
  "question": "string",
  "options": ["Option A", "Option B", "Option C", "Option D"],
  "answer": "Option X",
  "explanation": "string"
}}

Make sure:
- Options are distinct, meaningful, and relevant to the topic.
- Provide exactly 4 options.
- The "answer" field must exactly match one of the options.
- The correct answer should not always be the same option (randomize the correct answer position).
- The explanation clearly explains why the answer is correct."""
