"""Data classes for the tutor domain model.

The dict forms use the camelCase field names of the stored data and of export
files, so `to_dict` / `from_dict` must round-trip exactly.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")
DEFAULT_DIFFICULTY = "Intermediate"

STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"
STATUSES = (STATUS_IN_PROGRESS, STATUS_COMPLETED)


def normalize_difficulty(value: Optional[str]) -> str:
    cleaned = (value or "").strip().capitalize()
    return cleaned if cleaned in DIFFICULTIES else DEFAULT_DIFFICULTY


def normalize_answers(answers: list, count: int) -> list[str]:
    """Pad with empty strings or truncate so there is one answer per question."""
    normalized = ["" if a is None else str(a) for a in list(answers)[:count]]
    return normalized + [""] * (count - len(normalized))


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_date(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; unparseable values sort as the oldest."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Section:
    title: str
    description: str = ""
    difficulty: str = DEFAULT_DIFFICULTY

    def to_dict(self) -> dict:
        return {"title": self.title, "description": self.description, "difficulty": self.difficulty}

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        return cls(
            title=data["title"],
            description=data.get("description", ""),
            difficulty=normalize_difficulty(data.get("difficulty")),
        )


@dataclass
class StudyPlan:
    id: str
    topic: str
    summary: str = ""
    sections: list[Section] = field(default_factory=list)

    def find_section(self, title: str) -> Optional[Section]:
        return next((s for s in self.sections if s.title == title), None)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "topic": self.topic,
            "summary": self.summary,
            "sections": [s.to_dict() for s in self.sections],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StudyPlan":
        return cls(
            id=data["id"],
            topic=data["topic"],
            summary=data.get("summary", ""),
            sections=[Section.from_dict(s) for s in data.get("sections", [])],
        )


@dataclass
class Question:
    question: str
    topic: str = ""

    def to_dict(self) -> dict:
        return {"question": self.question, "topic": self.topic}

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(question=data["question"], topic=data.get("topic", ""))


@dataclass
class GradedAnswer:
    question: str
    user_answer: str
    grade: str
    summary: str = ""
    key_concepts_missed: list[str] = field(default_factory=list)
    suggested_research_links: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "userAnswer": self.user_answer,
            "grade": self.grade,
            "summary": self.summary,
            "keyConceptsMissed": list(self.key_concepts_missed),
            "suggestedResearchLinks": list(self.suggested_research_links),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GradedAnswer":
        return cls(
            question=data["question"],
            user_answer=data.get("userAnswer", ""),
            grade=data["grade"],
            summary=data.get("summary", ""),
            key_concepts_missed=list(data.get("keyConceptsMissed") or []),
            suggested_research_links=list(data.get("suggestedResearchLinks") or []),
        )


@dataclass
class SessionRecord:
    """One quiz attempt against a section of a plan."""

    id: str
    plan_id: str
    topic: str
    section: Section
    questions: list[Question]
    user_answers: list[str]
    graded_answers: list[GradedAnswer] = field(default_factory=list)
    date: str = field(default_factory=utc_now_iso)
    status: str = STATUS_IN_PROGRESS

    @property
    def resume_index(self) -> int:
        """Index of the first answer that still needs grading."""
        return len(self.graded_answers)

    @property
    def is_fully_graded(self) -> bool:
        return len(self.graded_answers) == len(self.questions)

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def sort_date(self) -> datetime:
        return parse_date(self.date)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "planId": self.plan_id,
            "topic": self.topic,
            "section": self.section.to_dict(),
            "questions": [q.to_dict() for q in self.questions],
            "userAnswers": list(self.user_answers),
            "gradedAnswers": [g.to_dict() for g in self.graded_answers],
            "date": self.date,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionRecord":
        questions = [Question.from_dict(q) for q in data["questions"]]
        graded = [GradedAnswer.from_dict(g) for g in data.get("gradedAnswers", [])]
        graded = graded[:len(questions)]
        status = data.get("status")
        if status not in STATUSES:
            # Records written before attempts could be resumed carry no status.
            status = STATUS_COMPLETED if len(graded) == len(questions) else STATUS_IN_PROGRESS
        elif status == STATUS_COMPLETED and len(graded) < len(questions):
            status = STATUS_IN_PROGRESS
        return cls(
            id=data["id"],
            plan_id=data["planId"],
            topic=data.get("topic", ""),
            section=Section.from_dict(data["section"]),
            questions=questions,
            user_answers=normalize_answers(data.get("userAnswers", []), len(questions)),
            graded_answers=graded,
            date=data.get("date", ""),
            status=status,
        )
