"""Tests for deriving the view from persisted state."""
import pytest

from reup_tutor.errors import NotFoundError
from reup_tutor.models import GradedAnswer, Question, Section, SessionRecord, StudyPlan
from reup_tutor.navigation import (
    back_to_plan_list, close_feedback, load_state, reconcile, review_session, select_plan,
)
from reup_tutor.state import FEEDBACK, QUIZ, SETUP, STUDY_PLAN
from reup_tutor.store import ACTIVE_PLAN_KEY, ACTIVE_SESSION_KEY, get_value


def _seed(state, status="in-progress"):
    plans = [
        StudyPlan(id="p1", topic="Python", sections=[Section(title="Basics")]),
        StudyPlan(id="p2", topic="Go", sections=[Section(title="Channels")]),
    ]
    record = SessionRecord(
        id="s1", plan_id="p1", topic="Python", section=Section(title="Basics"),
        questions=[Question(question="Q1")], user_answers=[""], status=status,
    )
    if status == "completed":
        record.graded_answers = [GradedAnswer(question="Q1", user_answer="", grade="B")]
    state.set_study_plans(plans)
    state.set_session_history([record])
    return record


def test_empty_store_starts_in_setup(state):
    assert state.view == SETUP
    assert reconcile(state) == SETUP


def test_active_plan_shows_study_plan(tmp_db, state):
    _seed(state)
    state.set_active_plan_id("p2")
    assert load_state(tmp_db).view == STUDY_PLAN


def test_in_progress_session_resumes_quiz_and_forces_plan(tmp_db, state):
    _seed(state)
    state.set_active_plan_id("p2")
    state.set_active_session_id("s1")
    reloaded = load_state(tmp_db)
    assert reloaded.view == QUIZ
    assert reloaded.active_plan_id == "p1"
    assert get_value(tmp_db, ACTIVE_PLAN_KEY) == "p1"


def test_completed_session_always_resumes_feedback(tmp_db, state):
    _seed(state, status="completed")
    state.set_active_session_id("s1")
    for _ in range(3):
        assert load_state(tmp_db).view == FEEDBACK


def test_dangling_session_falls_back_to_plan(tmp_db, state):
    _seed(state)
    state.set_active_plan_id("p1")
    state.set_active_session_id("deleted")
    reloaded = load_state(tmp_db)
    assert reloaded.view == STUDY_PLAN
    assert reloaded.active_session_id is None
    assert get_value(tmp_db, ACTIVE_SESSION_KEY, "unset") is None


def test_dangling_session_without_plan_falls_back_to_setup(tmp_db, state):
    _seed(state)
    state.set_active_session_id("deleted")
    reloaded = load_state(tmp_db)
    assert reloaded.view == SETUP
    assert get_value(tmp_db, ACTIVE_SESSION_KEY, "unset") is None


def test_dangling_plan_is_cleared(tmp_db, state):
    state.set_active_plan_id("gone")
    reloaded = load_state(tmp_db)
    assert reloaded.view == SETUP
    assert get_value(tmp_db, ACTIVE_PLAN_KEY, "unset") is None


def test_session_of_missing_plan_is_treated_as_dangling(tmp_db, state):
    _seed(state)
    state.set_study_plans([p for p in state.study_plans if p.id != "p1"])
    state.set_active_session_id("s1")
    assert load_state(tmp_db).view == SETUP


def test_reconcile_is_idempotent(state):
    _seed(state)
    state.set_active_session_id("s1")
    first = (reconcile(state), state.active_plan_id, state.active_session_id)
    second = (reconcile(state), state.active_plan_id, state.active_session_id)
    assert first == second == (QUIZ, "p1", "s1")


def test_select_plan_and_back(state):
    _seed(state)
    assert select_plan(state, "p2") == STUDY_PLAN
    assert state.active_plan.topic == "Go"
    assert back_to_plan_list(state) == SETUP
    assert state.active_plan_id is None


def test_select_unknown_plan(state):
    with pytest.raises(NotFoundError):
        select_plan(state, "nope")


def test_review_and_close_feedback(state):
    _seed(state, status="completed")
    assert review_session(state, "s1") == FEEDBACK
    assert close_feedback(state) == STUDY_PLAN
    assert state.active_session_id is None
    assert state.active_plan_id == "p1"


def test_review_unfinished_attempt_reopens_quiz(state):
    _seed(state)
    assert review_session(state, "s1") == QUIZ


def test_review_unknown_session(state):
    with pytest.raises(NotFoundError):
        review_session(state, "nope")
