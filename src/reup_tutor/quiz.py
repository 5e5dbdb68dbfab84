"""Quiz attempts: starting, resuming, saving answers and resumable grading."""
import uuid
from typing import Callable, Optional

from loguru import logger

from reup_tutor.ai import TutorAI
from reup_tutor.errors import (
    AIServiceError, GradingError, GradingInProgressError, NotFoundError, QuizStartError,
)
from reup_tutor.models import (
    STATUS_COMPLETED, STATUS_IN_PROGRESS, Section, SessionRecord, StudyPlan,
    normalize_answers, utc_now_iso,
)
from reup_tutor.navigation import reconcile
from reup_tutor.state import TutorState

ProgressCallback = Callable[[int, int], None]


def get_session(state: TutorState, session_id: str) -> SessionRecord:
    record = state.find_session(session_id)
    if record is None:
        raise NotFoundError(f"Session {session_id} not found.")
    return record


def find_in_progress_session(state: TutorState, plan_id: str, section_title: str) -> Optional[SessionRecord]:
    for record in state.sessions_for_section(plan_id, section_title):
        if record.status == STATUS_IN_PROGRESS:
            return record
    return None


def latest_session(state: TutorState, plan_id: str, section_title: str) -> Optional[SessionRecord]:
    attempts = state.sessions_for_section(plan_id, section_title)
    return attempts[0] if attempts else None


def start_quiz(state: TutorState, ai: TutorAI, plan: StudyPlan, section: Section,
               force_new: bool = False) -> SessionRecord:
    """Resume the unfinished attempt at a section, or start a new one.

    A new attempt reuses the questions of the latest attempt at the section
    unless `force_new` is set or there is no earlier attempt, in which case
    fresh questions are generated. If generation fails nothing is recorded
    and the plan view stays current.
    """
    if state.active_plan_id != plan.id:
        state.set_active_plan_id(plan.id)

    existing = find_in_progress_session(state, plan.id, section.title)
    if existing is not None and not force_new:
        logger.info("Resuming session {} for {!r}", existing.id, section.title)
        state.set_active_session_id(existing.id)
        reconcile(state)
        return existing

    # Leave any open quiz or feedback screen before the slow call.
    state.set_active_session_id(None)
    reconcile(state)

    previous = latest_session(state, plan.id, section.title)
    if force_new or previous is None:
        try:
            questions = ai.generate_questions(section.title, plan.topic)
        except AIServiceError as e:
            logger.error("Failed to generate questions for {!r}: {}", section.title, e)
            reconcile(state)
            raise QuizStartError(f'Failed to start the quiz for "{section.title}". Please try again.') from e
    else:
        questions = list(previous.questions)

    record = SessionRecord(
        id=str(uuid.uuid4()),
        plan_id=plan.id,
        topic=plan.topic,
        section=section,
        questions=questions,
        user_answers=[""] * len(questions),
        graded_answers=[],
        date=utc_now_iso(),
        status=STATUS_IN_PROGRESS,
    )
    state.set_session_history([record] + state.session_history)
    state.set_active_session_id(record.id)
    logger.info("Started session {} for {!r} ({} questions)", record.id, section.title, len(questions))
    reconcile(state)
    return record


def update_answers(state: TutorState, session_id: str, answers: list[str]) -> SessionRecord:
    """Save typed answers onto an attempt without grading anything."""
    record = get_session(state, session_id)
    if record.status == STATUS_COMPLETED:
        logger.debug("Session {} is completed, answers left unchanged", session_id)
        return record
    record.user_answers = normalize_answers(answers, len(record.questions))
    state.save_session(record)
    return record


def leave_quiz(state: TutorState, session_id: str, answers: list[str]) -> str:
    """Save answers and return to the plan; the attempt stays resumable."""
    update_answers(state, session_id, answers)
    state.set_active_session_id(None)
    return reconcile(state)


def finish_quiz(state: TutorState, ai: TutorAI, session_id: str, answers: list[str],
                on_progress: Optional[ProgressCallback] = None) -> SessionRecord:
    """Grade an attempt, starting at its first ungraded answer.

    Answers are saved before any grading call and every graded answer is saved
    as soon as it arrives. If a call fails the loop stops, the attempt stays
    in progress and GradingError reports how far it got; calling again picks
    up where it stopped.
    """
    record = get_session(state, session_id)
    if session_id in state.grading_sessions:
        raise GradingInProgressError("This quiz is already being graded.")
    state.grading_sessions.add(session_id)
    try:
        if record.status != STATUS_COMPLETED:
            record.user_answers = normalize_answers(answers, len(record.questions))
            state.save_session(record)

        total = len(record.questions)
        start = record.resume_index
        if start:
            logger.info("Resuming grading of session {} at answer {}", session_id, start + 1)
        for index in range(start, total):
            if on_progress is not None:
                on_progress(index + 1, total)
            question = record.questions[index]
            try:
                graded = ai.grade_answer(question.question, record.user_answers[index])
            except AIServiceError as e:
                logger.error("Grading failed for session {} at answer {}: {}", session_id, index + 1, e)
                reconcile(state)
                raise GradingError(
                    f"An error occurred during grading. Your progress has been saved "
                    f"({index} of {total} answers graded). Please try finishing the quiz again.",
                    graded=index,
                    total=total,
                ) from e
            record.graded_answers.append(graded)
            state.save_session(record)

        record.status = STATUS_COMPLETED
        state.save_session(record)
        state.set_active_session_id(record.id)
        logger.info("Session {} completed", session_id)
        reconcile(state)
        return record
    finally:
        state.grading_sessions.discard(session_id)
