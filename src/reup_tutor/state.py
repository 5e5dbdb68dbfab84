"""Canonical in-memory snapshot of the persisted tutor data.

All mutations go through the setters here, which update memory first and then
write the whole value back to its own key. A failed write is logged by the
store and memory keeps the new value.
"""
from typing import Callable, Optional

from loguru import logger

from reup_tutor.models import SessionRecord, StudyPlan
from reup_tutor.store import (
    ACTIVE_PLAN_KEY, ACTIVE_SESSION_KEY, HISTORY_KEY, PLANS_KEY, get_value, set_value,
)

SETUP = "setup"
STUDY_PLAN = "study_plan"
QUIZ = "quiz"
FEEDBACK = "feedback"
LOADING_PLAN = "loading_plan"
VIEWS = (SETUP, STUDY_PLAN, QUIZ, FEEDBACK, LOADING_PLAN)


def _load_entities(raw, factory: Callable, label: str) -> list:
    if not isinstance(raw, list):
        logger.warning("Stored {} is not a list, ignoring it", label)
        return []
    entities = []
    for item in raw:
        try:
            entities.append(factory(item))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed stored {} entry: {!r}", label, e)
    return entities


def _load_id(raw, label: str) -> Optional[str]:
    if raw is None or isinstance(raw, str):
        return raw
    logger.warning("Stored {} is not a string id, ignoring it", label)
    return None


class TutorState:
    """Plans, session history and the active ids, backed by the key/value store."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.view = SETUP
        self.grading_sessions: set[str] = set()
        self.study_plans: list[StudyPlan] = []
        self.session_history: list[SessionRecord] = []
        self.active_plan_id: Optional[str] = None
        self.active_session_id: Optional[str] = None
        self.reload()

    def reload(self) -> None:
        """Re-read every key from the store."""
        self.study_plans = _load_entities(
            get_value(self.db_path, PLANS_KEY, []), StudyPlan.from_dict, "study plan"
        )
        self.session_history = _load_entities(
            get_value(self.db_path, HISTORY_KEY, []), SessionRecord.from_dict, "session"
        )
        self.active_plan_id = _load_id(get_value(self.db_path, ACTIVE_PLAN_KEY, None), "active plan id")
        self.active_session_id = _load_id(
            get_value(self.db_path, ACTIVE_SESSION_KEY, None), "active session id"
        )

    # Setters

    def set_study_plans(self, plans: list[StudyPlan]) -> bool:
        self.study_plans = list(plans)
        return set_value(self.db_path, PLANS_KEY, [p.to_dict() for p in self.study_plans])

    def set_session_history(self, history: list[SessionRecord]) -> bool:
        self.session_history = list(history)
        return set_value(self.db_path, HISTORY_KEY, [s.to_dict() for s in self.session_history])

    def set_active_plan_id(self, plan_id: Optional[str]) -> bool:
        self.active_plan_id = plan_id
        return set_value(self.db_path, ACTIVE_PLAN_KEY, plan_id)

    def set_active_session_id(self, session_id: Optional[str]) -> bool:
        self.active_session_id = session_id
        return set_value(self.db_path, ACTIVE_SESSION_KEY, session_id)

    def save_session(self, record: SessionRecord) -> bool:
        """Replace the stored record with the same id and persist the history."""
        history = [record if s.id == record.id else s for s in self.session_history]
        if not any(s.id == record.id for s in history):
            history.insert(0, record)
        return self.set_session_history(history)

    # Lookups

    def find_plan(self, plan_id: Optional[str]) -> Optional[StudyPlan]:
        return next((p for p in self.study_plans if p.id == plan_id), None)

    def find_session(self, session_id: Optional[str]) -> Optional[SessionRecord]:
        return next((s for s in self.session_history if s.id == session_id), None)

    @property
    def active_plan(self) -> Optional[StudyPlan]:
        return self.find_plan(self.active_plan_id)

    @property
    def active_session(self) -> Optional[SessionRecord]:
        return self.find_session(self.active_session_id)

    def sessions_for_plan(self, plan_id: str) -> list[SessionRecord]:
        return [s for s in self.session_history if s.plan_id == plan_id]

    def sessions_for_section(self, plan_id: str, section_title: str) -> list[SessionRecord]:
        """Attempts at one section of a plan, newest first."""
        sessions = [
            s for s in self.session_history
            if s.plan_id == plan_id and s.section.title == section_title
        ]
        return sorted(sessions, key=lambda s: s.sort_date, reverse=True)
