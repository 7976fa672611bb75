"""Forward-only transition rules for the response state fields."""

from enum import Enum

from howhappy.domain.models import JobStatus, UploadState

UPLOAD_TRANSITIONS: dict[UploadState, frozenset[UploadState]] = {
    UploadState.PREPARED: frozenset({UploadState.UPLOADING, UploadState.COMPLETED, UploadState.FAILED}),
    UploadState.UPLOADING: frozenset({UploadState.COMPLETED, UploadState.FAILED}),
    UploadState.COMPLETED: frozenset(),
    UploadState.FAILED: frozenset(),
}

# FAILED -> PROCESSING is the redelivery path; COMPLETED never moves again.
JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.FAILED: frozenset({JobStatus.PROCESSING}),
    JobStatus.COMPLETED: frozenset(),
}

STATE_FIELDS: dict[str, dict] = {
    "upload_state": UPLOAD_TRANSITIONS,
    "transcription_status": JOB_TRANSITIONS,
    "analysis_status": JOB_TRANSITIONS,
}


def can_transition(field: str, current: Enum, target: Enum) -> bool:
    """Returns True if ``field`` may move from ``current`` to ``target``."""
    return target in STATE_FIELDS[field][current]


def sources_for(field: str, target: Enum) -> frozenset:
    """Returns every state of ``field`` from which ``target`` is reachable."""
    table = STATE_FIELDS[field]
    return frozenset(state for state, targets in table.items() if target in targets)


def is_terminal(field: str, state: Enum) -> bool:
    return not STATE_FIELDS[field][state]
