"""Grade aggregation and progress figures for plans and sections."""
from typing import Optional

from reup_tutor.grades import average, letter_grade, numeric_grade
from reup_tutor.models import SessionRecord, StudyPlan
from reup_tutor.state import TutorState


def session_score(record: SessionRecord) -> Optional[float]:
    """Mean of the graded answers, or None if nothing is graded yet."""
    return average([numeric_grade(g.grade) for g in record.graded_answers])


def section_score(records: list[SessionRecord]) -> Optional[float]:
    """Mean of the per-attempt scores. An attempt with nothing graded counts as 0."""
    scores = [session_score(r) for r in records]
    return average([0.0 if s is None else s for s in scores])


def plan_score(state: TutorState, plan: StudyPlan) -> Optional[float]:
    scores = [section_score(state.sessions_for_section(plan.id, s.title)) for s in plan.sections]
    return average([s for s in scores if s is not None])


def get_plan_progress(state: TutorState, plan: StudyPlan) -> dict:
    """Sections attempted at least once, matched by title."""
    titles = {s.title for s in plan.sections}
    attempted = {r.section.title for r in state.sessions_for_plan(plan.id)} & titles
    total = len(plan.sections)
    percent = (len(attempted) / total) * 100 if total else 0.0
    return {"attempted": len(attempted), "total": total, "percent": round(percent, 1)}


def get_plan_summaries(state: TutorState) -> list[dict]:
    results = []
    for plan in state.study_plans:
        progress = get_plan_progress(state, plan)
        results.append({
            "plan_id": plan.id,
            "topic": plan.topic,
            "summary": plan.summary,
            "grade": letter_grade(plan_score(state, plan)),
            "attempted": progress["attempted"],
            "total": progress["total"],
            "percent": progress["percent"],
        })
    return results


def get_section_rows(state: TutorState, plan: StudyPlan) -> list[dict]:
    rows = []
    for number, section in enumerate(plan.sections, 1):
        attempts = state.sessions_for_section(plan.id, section.title)
        rows.append({
            "number": number,
            "title": section.title,
            "description": section.description,
            "difficulty": section.difficulty,
            "grade": letter_grade(section_score(attempts)),
            "attempts": len(attempts),
            "in_progress": any(not a.is_completed for a in attempts),
        })
    return rows


def get_attempt_rows(state: TutorState, plan_id: str, section_title: str) -> list[dict]:
    """Attempts at a section, newest first, numbered oldest = 1."""
    attempts = state.sessions_for_section(plan_id, section_title)
    return [
        {
            "session_id": record.id,
            "attempt": len(attempts) - index,
            "date": record.sort_date.date().isoformat(),
            "status": record.status,
            "graded": len(record.graded_answers),
            "total": len(record.questions),
            "grade": letter_grade(session_score(record)),
        }
        for index, record in enumerate(attempts)
    ]
