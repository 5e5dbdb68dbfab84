"""Namespaced JSON key/value persistence.

Every logical value (the plan list, the session history, the active ids) is
stored whole under its own key. Reads never raise: a missing key, a corrupt
value or an unreadable database all fall back to the caller's default. Writes
never raise either; callers learn from the return value whether the value
reached disk.
"""
import json
import sqlite3
from datetime import datetime
from typing import Any

from loguru import logger

from reup_tutor.db import get_connection

KEY_PREFIX = "reup-ai-"

PLANS_KEY = "studyPlans"
ACTIVE_PLAN_KEY = "activePlanId"
HISTORY_KEY = "sessionHistory"
ACTIVE_SESSION_KEY = "activeSessionId"


def namespaced(key: str) -> str:
    return KEY_PREFIX + key


def get_value(db_path: str, key: str, default: Any = None) -> Any:
    try:
        conn = get_connection(db_path)
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (namespaced(key),)
            ).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("Error reading stored key {!r}: {}", namespaced(key), e)
        return default
    if row is None:
        logger.debug("No stored value for {!r}, using default", namespaced(key))
        return default
    try:
        return json.loads(row["value"])
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Stored value for {!r} is not valid JSON ({}), using default", namespaced(key), e)
        return default


def set_value(db_path: str, key: str, value: Any) -> bool:
    """Serialize and store a value. Returns False if it could not be persisted."""
    try:
        payload = json.dumps(value)
    except (TypeError, ValueError) as e:
        logger.error("Could not serialize value for {!r}: {}", namespaced(key), e)
        return False
    try:
        conn = get_connection(db_path)
        try:
            conn.execute(
                "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (namespaced(key), payload, datetime.now().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Could not persist {!r}: {}", namespaced(key), e)
        return False
    return True
