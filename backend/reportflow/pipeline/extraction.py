"""
Tolerant field extraction for third-party JSON responses.

The external services have renamed their response fields over time,
so each value is looked up through an ordered precedence list and the
first usable entry wins.  A value is usable when it is neither None
nor an empty string.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

# ── Precedence lists ──────────────────────────────────────
# Storage upload response → object key
STORAGE_KEY_FIELDS: tuple[str, ...] = ("Key", "key", "name")

# Analysis submission response → job identifier
JOB_ID_FIELDS: tuple[str, ...] = ("history_id", "historyId", "id")

# Job status record
JOB_STATUS_FIELDS: tuple[str, ...] = ("turnitin_status", "status")
AI_REPORT_URL_FIELDS: tuple[str, ...] = ("turnitin_report_url", "report_url")
SIMILARITY_REPORT_URL_FIELDS: tuple[str, ...] = (
    "turnitin_similarity_report_url",
    "similarity_report_url",
)

# Error payloads
SERVICE_ERROR_FIELDS: tuple[str, ...] = ("error", "code")


def first_present(payload: Any, fields: Sequence[str]) -> Any | None:
    """
    Return the value of the first field in `fields` that `payload` carries.

    Non-mapping payloads (lists, strings, None) yield None.
    """
    if not isinstance(payload, Mapping):
        return None
    for name in fields:
        value = payload.get(name)
        if value is None or value == "":
            continue
        return value
    return None


def first_record(payload: Any) -> Mapping[str, Any] | None:
    """A single record, or the first element of a list of records."""
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if isinstance(payload, Mapping):
        return payload
    return None
