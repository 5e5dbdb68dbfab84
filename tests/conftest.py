import pytest

from reup_tutor.db import init_db
from reup_tutor.errors import AIServiceError
from reup_tutor.models import GradedAnswer, Question, Section, StudyPlan
from reup_tutor.navigation import load_state


class FakeTutorAI:
    """Scripted stand-in for the Gemini collaborator that records every call."""

    def __init__(self, sections: int = 3, questions: int = 5, grades=None):
        self.section_count = sections
        self.question_count = questions
        self.grades = list(grades or ["A"])
        self.fail_plan = False
        self.fail_questions = False
        self.fail_grading_at = set()  # 1-based grade_answer call numbers that fail
        self.plan_calls = []
        self.question_calls = []
        self.grade_calls = []
        self.question_batches = 0

    def generate_plan(self, topic, context=None):
        self.plan_calls.append((topic, context))
        if self.fail_plan:
            raise AIServiceError("plan service down")
        return StudyPlan(
            id="",
            topic=topic,
            summary=f"A plan for {topic}",
            sections=[
                Section(title=f"Section {i}", description=f"About part {i}", difficulty="Beginner")
                for i in range(1, self.section_count + 1)
            ],
        )

    def generate_questions(self, section_title, topic):
        self.question_calls.append((section_title, topic))
        if self.fail_questions:
            raise AIServiceError("question service down")
        self.question_batches += 1
        return [
            Question(question=f"{section_title} Q{i} (batch {self.question_batches})", topic=topic)
            for i in range(1, self.question_count + 1)
        ]

    def grade_answer(self, question, user_answer):
        self.grade_calls.append((question, user_answer))
        if len(self.grade_calls) in self.fail_grading_at:
            raise AIServiceError("grading service down")
        grade = self.grades[(len(self.grade_calls) - 1) % len(self.grades)]
        return GradedAnswer(
            question=question,
            user_answer=user_answer,
            grade=grade,
            summary="Solid answer.",
            key_concepts_missed=["edge cases"],
            suggested_research_links=["https://example.com/read"],
        )


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tutor.db")
    return db_path


@pytest.fixture
def state(tmp_db):
    init_db(tmp_db)
    return load_state(tmp_db)


@pytest.fixture
def fake_ai():
    return FakeTutorAI()
