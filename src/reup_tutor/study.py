"""Study plan creation and deletion."""
import uuid
from typing import Optional

from loguru import logger

from reup_tutor.ai import TutorAI
from reup_tutor.errors import AIServiceError, NotFoundError, PlanGenerationError
from reup_tutor.models import StudyPlan
from reup_tutor.navigation import reconcile
from reup_tutor.state import LOADING_PLAN, TutorState


def create_plan(state: TutorState, ai: TutorAI, topic: str, context: Optional[str] = None) -> StudyPlan:
    """Generate a plan for a topic and make it the active plan.

    Nothing is stored if generation fails; the view falls back to whatever the
    saved state implies.
    """
    topic = (topic or "").strip()
    if not topic:
        raise PlanGenerationError("Please enter a topic to study.")
    context = (context or "").strip() or None

    state.view = LOADING_PLAN
    try:
        generated = ai.generate_plan(topic, context)
    except AIServiceError as e:
        logger.error("Failed to generate study plan for {!r}: {}", topic, e)
        reconcile(state)
        raise PlanGenerationError(
            "Sorry, we couldn't create a study plan. This could be due to an invalid API key "
            "or a network issue. Please try again."
        ) from e

    plan = StudyPlan(
        id=str(uuid.uuid4()),
        topic=generated.topic or topic,
        summary=generated.summary,
        sections=list(generated.sections),
    )
    state.set_study_plans(state.study_plans + [plan])
    state.set_active_session_id(None)
    state.set_active_plan_id(plan.id)
    logger.info("Created study plan {} ({} sections)", plan.id, len(plan.sections))
    reconcile(state)
    return plan


def delete_plan(state: TutorState, plan_id: str) -> int:
    """Delete a plan and every attempt made against it. Returns the attempts removed."""
    if state.find_plan(plan_id) is None:
        raise NotFoundError(f"Study plan {plan_id} not found.")
    active_session = state.active_session
    kept_sessions = [s for s in state.session_history if s.plan_id != plan_id]
    removed = len(state.session_history) - len(kept_sessions)

    state.set_study_plans([p for p in state.study_plans if p.id != plan_id])
    state.set_session_history(kept_sessions)
    if state.active_plan_id == plan_id or (active_session is not None and active_session.plan_id == plan_id):
        state.set_active_session_id(None)
        state.set_active_plan_id(None)
    logger.info("Deleted study plan {} and {} sessions", plan_id, removed)
    reconcile(state)
    return removed
