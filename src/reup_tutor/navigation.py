"""Derive the current view from persisted state.

The view is never stored. After every mutation, and on every load, `reconcile`
recomputes it from the active ids with this precedence:

1. an active session that exists resumes into ``quiz`` (in progress) or
   ``feedback`` (completed), and its plan becomes the active plan;
2. otherwise an active plan that exists shows ``study_plan``;
3. otherwise ``setup``.

Ids that point at nothing are cleared from the store on the way through.
"""
from loguru import logger

from reup_tutor.db import init_db
from reup_tutor.errors import NotFoundError
from reup_tutor.models import STATUS_IN_PROGRESS
from reup_tutor.state import FEEDBACK, QUIZ, SETUP, STUDY_PLAN, TutorState


def reconcile(state: TutorState) -> str:
    session_id = state.active_session_id
    if session_id is not None:
        record = state.find_session(session_id)
        if record is None:
            logger.warning("Active session {} no longer exists, clearing it", session_id)
            state.set_active_session_id(None)
        elif state.find_plan(record.plan_id) is None:
            logger.warning("Active session {} belongs to missing plan {}, clearing it", session_id, record.plan_id)
            state.set_active_session_id(None)
        else:
            if state.active_plan_id != record.plan_id:
                state.set_active_plan_id(record.plan_id)
            state.view = QUIZ if record.status == STATUS_IN_PROGRESS else FEEDBACK
            return state.view

    plan_id = state.active_plan_id
    if plan_id is not None:
        if state.find_plan(plan_id) is not None:
            state.view = STUDY_PLAN
            return state.view
        logger.warning("Active plan {} no longer exists, clearing it", plan_id)
        state.set_active_plan_id(None)

    state.view = SETUP
    return state.view


def load_state(db_path: str) -> TutorState:
    """Open the store and resume into whatever view the saved data implies."""
    init_db(db_path)
    state = TutorState(db_path)
    view = reconcile(state)
    logger.info("Resumed into {} view", view)
    return state


def select_plan(state: TutorState, plan_id: str) -> str:
    if state.find_plan(plan_id) is None:
        raise NotFoundError(f"Study plan {plan_id} not found.")
    state.set_active_session_id(None)
    state.set_active_plan_id(plan_id)
    return reconcile(state)


def back_to_plan_list(state: TutorState) -> str:
    state.set_active_session_id(None)
    state.set_active_plan_id(None)
    return reconcile(state)


def review_session(state: TutorState, session_id: str) -> str:
    """Open a past attempt; an unfinished one reopens the quiz."""
    if state.find_session(session_id) is None:
        raise NotFoundError(f"Session {session_id} not found.")
    state.set_active_session_id(session_id)
    return reconcile(state)


def close_feedback(state: TutorState) -> str:
    state.set_active_session_id(None)
    return reconcile(state)
