"""Project-level status derived from material decisions."""

from typing import Dict
from typing import Iterable
from typing import Optional

from espec_api.models.domain import Material
from espec_api.models.enums import Status


def count_by_status(materials: Iterable[Material]) -> Dict[Status, int]:
    """Count materials per status; every Status key is present."""
    counts = {status: 0 for status in Status}
    for material in materials:
        counts[material.status] += 1
    return counts


def compute_aggregate_status(materials: Iterable[Material]) -> Optional[Status]:
    """
    Return the status the project should move to, or None while undecided.

    - any material PENDING  -> None (no project-level call)
    - none pending, any REJECTED -> REJECTED
    - otherwise (including no materials at all) -> APPROVED
    """
    counts = count_by_status(materials)
    if counts[Status.PENDING] > 0:
        return None
    if counts[Status.REJECTED] > 0:
        return Status.REJECTED
    return Status.APPROVED
