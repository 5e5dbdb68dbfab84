"""Export and import of plans and session history as versioned JSON files."""
import json
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from reup_tutor.errors import ExportError, ImportFormatError, NotFoundError
from reup_tutor.models import SessionRecord, StudyPlan
from reup_tutor.navigation import reconcile
from reup_tutor.state import TutorState

EXPORT_VERSION = 1
EXPORT_FULL = "full"
EXPORT_SINGLE_PLAN = "single_plan"
EXPORT_TYPES = (EXPORT_FULL, EXPORT_SINGLE_PLAN)


def build_export(state: TutorState, plan_id: Optional[str] = None) -> dict:
    """Snapshot everything, or one plan and its sessions when plan_id is given."""
    if plan_id is None:
        plans = state.study_plans
        sessions = state.session_history
        export_type = EXPORT_FULL
    else:
        plan = state.find_plan(plan_id)
        if plan is None:
            raise NotFoundError(f"Study plan {plan_id} not found.")
        plans = [plan]
        sessions = state.sessions_for_plan(plan_id)
        export_type = EXPORT_SINGLE_PLAN
    return {
        "version": EXPORT_VERSION,
        "type": export_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": {
            "studyPlans": [p.to_dict() for p in plans],
            "sessionHistory": [s.to_dict() for s in sessions],
        },
    }


def default_export_filename(plan: Optional[StudyPlan] = None, today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    if plan is None:
        return f"reup-ai-backup-{stamp}.json"
    slug = re.sub(r"[^a-z0-9]+", "-", plan.topic.lower()).strip("-") or "plan"
    return f"reup-ai-{slug}-{stamp}.json"


def export_to_file(export_data: dict, file_path: str) -> Path:
    path = Path(file_path)
    try:
        path.write_text(json.dumps(export_data, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        logger.error("Failed to export data to {}: {}", path, e)
        raise ExportError(f"An error occurred while exporting the data: {e}") from e
    logger.info("Exported {} data to {}", export_data.get("type"), path)
    return path


def validate_export(data) -> dict:
    if not isinstance(data, dict):
        raise ImportFormatError("Invalid or corrupted import file format: expected a JSON object.")
    if data.get("version") != EXPORT_VERSION:
        raise ImportFormatError(
            f"Invalid or corrupted import file format: unsupported version {data.get('version')!r}."
        )
    if data.get("type") not in EXPORT_TYPES:
        raise ImportFormatError(
            f"Invalid or corrupted import file format: unknown export type {data.get('type')!r}."
        )
    payload = data.get("data")
    if not isinstance(payload, dict):
        raise ImportFormatError("Invalid or corrupted import file format: missing data section.")
    for key in ("studyPlans", "sessionHistory"):
        if not isinstance(payload.get(key), list):
            raise ImportFormatError(f"Invalid or corrupted import file format: {key} must be a list.")
    return data


def read_import_file(file_path: str) -> dict:
    """Read and validate an export file without touching any state."""
    try:
        text = Path(file_path).read_text(encoding="utf-8")
    except OSError as e:
        raise ImportFormatError(f"Error reading file: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(
            "Failed to parse file. Make sure it is a valid JSON export from Re-up AI."
        ) from e
    return validate_export(data)


def _parse_entities(items: list, factory: Callable, label: str) -> list:
    entities = []
    for position, item in enumerate(items, 1):
        try:
            entities.append(factory(item))
        except (KeyError, TypeError, AttributeError) as e:
            raise ImportFormatError(f"Invalid {label} #{position} in import file: {e!r}") from e
    return entities


def import_data(state: TutorState, export_data: dict, confirm: Callable[[dict], bool]) -> Optional[dict]:
    """Merge an export into the current data, keyed by id.

    Imported plans and sessions replace existing ones with the same id;
    everything else on both sides is kept. `confirm` receives a summary and
    must return True before anything changes. Returns the summary, or None if
    the import was declined.
    """
    validate_export(export_data)
    payload = export_data["data"]
    imported_plans = _parse_entities(payload["studyPlans"], StudyPlan.from_dict, "study plan")
    imported_sessions = _parse_entities(payload["sessionHistory"], SessionRecord.from_dict, "session")

    existing_plan_ids = {p.id for p in state.study_plans}
    existing_session_ids = {s.id for s in state.session_history}
    summary = {
        "type": export_data["type"],
        "timestamp": export_data.get("timestamp"),
        "plans": len(imported_plans),
        "sessions": len(imported_sessions),
        "replaced_plans": sum(1 for p in imported_plans if p.id in existing_plan_ids),
        "replaced_sessions": sum(1 for s in imported_sessions if s.id in existing_session_ids),
    }
    if not confirm(summary):
        logger.info("Import declined")
        return None

    merged_plans = {p.id: p for p in state.study_plans}
    merged_plans.update({p.id: p for p in imported_plans})
    merged_sessions = {s.id: s for s in state.session_history}
    merged_sessions.update({s.id: s for s in imported_sessions})

    state.set_study_plans(list(merged_plans.values()))
    state.set_session_history(list(merged_sessions.values()))
    logger.info(
        "Imported {} plans and {} sessions ({} plans replaced)",
        summary["plans"], summary["sessions"], summary["replaced_plans"],
    )
    reconcile(state)
    return summary
