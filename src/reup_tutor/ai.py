"""Generative AI collaborator: plan generation, question generation, grading.

The engine only depends on the `TutorAI` protocol. `GeminiTutorAI` is the
production implementation; every failure it meets (missing key, network,
quota, unusable response) is raised as `AIServiceError`.
"""
import json
from typing import Optional, Protocol

from loguru import logger

from reup_tutor.config import Settings, get_settings
from reup_tutor.errors import AIServiceError
from reup_tutor.models import GradedAnswer, Question, Section, StudyPlan

MIN_SECTIONS = 3
MAX_SECTIONS = 7
QUESTION_COUNT = 5

PLAN_PROMPT = """Create a detailed study plan for the topic: "{topic}". \
The plan should be structured for interview preparation. {context_clause}\
The plan must have at least {min_sections} sections and no more than {max_sections}.

Respond with a JSON object:
{{"topic": "<the main topic>",
  "summary": "<one paragraph summary of the plan>",
  "sections": [{{"title": "<section title>",
                "description": "<what the section covers>",
                "difficulty": "Beginner" | "Intermediate" | "Advanced"}}]}}
Order the sections logically."""

QUESTIONS_PROMPT = """Generate {count} intermediate-level interview questions about "{section_title}" \
within the broader topic of "{topic}". The questions should require detailed, conceptual answers, \
not just simple definitions. Where appropriate, for scientific or mathematical topics, use LaTeX \
notation for formulas (e.g., \\( E = mc^2 \\)).

Respond with a JSON array: [{{"question": "<question text>", "topic": "<specific topic covered>"}}]"""

GRADING_PROMPT = """As a senior interviewer, evaluate the following answer to an interview question.
Question: "{question}"
User's Answer: "{user_answer}"
Provide a grade, a constructive summary, identify key concepts the user missed, and suggest \
relevant research links. Be critical but fair.

Respond with a JSON object:
{{"grade": "<one of A+, A, A-, B+, B, B-, C+, C, C-, D+, D, D-, F>",
  "summary": "<strengths and weaknesses of the answer>",
  "keyConceptsMissed": ["<concept>"],
  "suggestedResearchLinks": ["<url>"]}}"""


class TutorAI(Protocol):
    def generate_plan(self, topic: str, context: Optional[str] = None) -> StudyPlan: ...

    def generate_questions(self, section_title: str, topic: str) -> list[Question]: ...

    def grade_answer(self, question: str, user_answer: str) -> GradedAnswer: ...


def parse_plan(data, topic: str) -> StudyPlan:
    """Build an id-less plan from a plan response."""
    if not isinstance(data, dict) or not isinstance(data.get("sections"), list):
        raise AIServiceError("Study plan response is missing its sections.")
    try:
        sections = [Section.from_dict(s) for s in data["sections"]]
    except (KeyError, TypeError, AttributeError) as e:
        raise AIServiceError(f"Study plan response has a malformed section: {e}") from e
    if not MIN_SECTIONS <= len(sections) <= MAX_SECTIONS:
        raise AIServiceError(
            f"Study plan has {len(sections)} sections, expected {MIN_SECTIONS} to {MAX_SECTIONS}."
        )
    return StudyPlan(
        id="",
        topic=str(data.get("topic") or topic),
        summary=str(data.get("summary") or ""),
        sections=sections,
    )


def parse_questions(data) -> list[Question]:
    if isinstance(data, dict):
        data = data.get("questions")
    if not isinstance(data, list):
        raise AIServiceError("Question response is not a list.")
    try:
        questions = [Question.from_dict(q) for q in data]
    except (KeyError, TypeError, AttributeError) as e:
        raise AIServiceError(f"Question response has a malformed entry: {e}") from e
    if not questions:
        raise AIServiceError("No questions were generated.")
    if len(questions) != QUESTION_COUNT:
        logger.warning("Expected {} questions, got {}", QUESTION_COUNT, len(questions))
    return questions[:QUESTION_COUNT]


def parse_grade(data, question: str, user_answer: str) -> GradedAnswer:
    if not isinstance(data, dict) or not data.get("grade"):
        raise AIServiceError("Grading response is missing a grade.")
    return GradedAnswer(
        question=question,
        user_answer=user_answer,
        grade=str(data["grade"]).strip().upper(),
        summary=str(data.get("summary") or ""),
        key_concepts_missed=[str(c) for c in data.get("keyConceptsMissed") or []],
        suggested_research_links=[str(u) for u in data.get("suggestedResearchLinks") or []],
    )


class GeminiTutorAI:
    """Google Gemini backed collaborator using JSON response mode."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._models = {}

    def _model(self, model_name: str):
        if not self.settings.gemini_api_key:
            raise AIServiceError("No Gemini API key configured. Set GEMINI_API_KEY.")
        try:
            # Lazy import to keep startup fast when the service is not used
            import google.generativeai as genai
        except ImportError as e:
            raise AIServiceError("google-generativeai not installed. Run: pip install google-generativeai") from e
        if model_name not in self._models:
            genai.configure(api_key=self.settings.gemini_api_key)
            self._models[model_name] = genai.GenerativeModel(model_name=model_name)
        return self._models[model_name]

    def _generate_json(self, model_name: str, prompt: str, temperature: float):
        model = self._model(model_name)
        try:
            response = model.generate_content(
                prompt,
                generation_config={
                    "response_mime_type": "application/json",
                    "temperature": temperature,
                },
            )
            return json.loads(response.text)
        except Exception as e:
            logger.error("Gemini request to {} failed: {}", model_name, e)
            raise AIServiceError(f"The AI service request failed: {e}") from e

    def generate_plan(self, topic: str, context: Optional[str] = None) -> StudyPlan:
        context_clause = f"Base it on the following context/job description: {context} " if context else ""
        prompt = PLAN_PROMPT.format(
            topic=topic, context_clause=context_clause,
            min_sections=MIN_SECTIONS, max_sections=MAX_SECTIONS,
        )
        data = self._generate_json(self.settings.plan_model, prompt, self.settings.plan_temperature)
        return parse_plan(data, topic)

    def generate_questions(self, section_title: str, topic: str) -> list[Question]:
        prompt = QUESTIONS_PROMPT.format(count=QUESTION_COUNT, section_title=section_title, topic=topic)
        data = self._generate_json(self.settings.question_model, prompt, self.settings.question_temperature)
        return parse_questions(data)

    def grade_answer(self, question: str, user_answer: str) -> GradedAnswer:
        prompt = GRADING_PROMPT.format(question=question, user_answer=user_answer)
        data = self._generate_json(self.settings.grading_model, prompt, self.settings.grading_temperature)
        return parse_grade(data, question, user_answer)
