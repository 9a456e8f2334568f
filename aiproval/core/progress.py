"""
Stage progress aggregation.

Pure, read-only derivation of a mockup's current stage and overall status
from its workflow stages, its per-stage progress rows and the individual
reviewer decisions. No database access and no side effects, so it is safe
to call from any request at any time.

Current stage:
    the order of the row in ``in_review``; more than one such row is an
    invariant violation and raises InvalidStateError. Otherwise the highest
    ``approved`` order, otherwise 1.

Overall status (first match wins):
    changes_requested  any row is changes_requested
    approved           at least one row and every row approved
    in_progress        any row is in_review
    not_started        everything else
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping

from aiproval.core.exceptions import InvalidStateError
from aiproval.core.stages import WorkflowStages

NOT_STARTED = "not_started"
IN_REVIEW = "in_review"
APPROVED = "approved"
CHANGES_REQUESTED = "changes_requested"
IN_PROGRESS = "in_progress"

STAGE_STATUSES = (NOT_STARTED, IN_REVIEW, APPROVED, CHANGES_REQUESTED)


def _field(row, name, default=None):
    if isinstance(row, Mapping):
        return row.get(name, default)
    return getattr(row, name, default)


def _as_dict(item) -> dict:
    if isinstance(item, Mapping):
        return dict(item)
    return item.to_dict()


def is_stage_complete(approvals_received: int, approvals_required: int) -> bool:
    return (approvals_received or 0) >= (approvals_required or 0)


def current_stage(progress_rows: Iterable) -> int:
    rows = list(progress_rows)
    in_review = sorted(_field(r, "stage_order") for r in rows if _field(r, "status") == IN_REVIEW)
    if len(in_review) > 1:
        raise InvalidStateError(
            "More than one stage is in review",
            details={"stages_in_review": in_review},
        )
    if in_review:
        return in_review[0]
    approved = [_field(r, "stage_order") for r in rows if _field(r, "status") == APPROVED]
    return max(approved) if approved else 1


def overall_status(progress_rows: Iterable) -> str:
    statuses = [_field(r, "status") for r in progress_rows]
    if CHANGES_REQUESTED in statuses:
        return CHANGES_REQUESTED
    if statuses and all(s == APPROVED for s in statuses):
        return APPROVED
    if IN_REVIEW in statuses:
        return IN_PROGRESS
    return NOT_STARTED


def group_approvals(user_approvals) -> dict[int, list]:
    """Accept either a {stage_order: [...]} mapping or a flat iterable of approvals."""
    if isinstance(user_approvals, Mapping):
        return {int(k): list(v) for k, v in user_approvals.items()}
    grouped: dict[int, list] = defaultdict(list)
    for approval in user_approvals or ():
        grouped[_field(approval, "stage_order")].append(approval)
    return dict(grouped)


def aggregate(stages: WorkflowStages, progress_rows: Iterable, user_approvals=()) -> dict:
    """Combine stages, progress rows and user approvals into one progress summary."""
    rows = list(progress_rows)
    by_order = {_field(r, "stage_order"): r for r in rows}
    approvals = group_approvals(user_approvals)

    per_stage = []
    for stage in stages:
        row = by_order.get(stage.order)
        if row is None:
            status = NOT_STARTED
            required = stage.approvals_required
            received = 0
        else:
            status = _field(row, "status") or NOT_STARTED
            required = _field(row, "approvals_required", stage.approvals_required)
            received = _field(row, "approvals_received", 0) or 0
        per_stage.append({
            "stage_order": stage.order,
            "stage_name": stage.name,
            "stage_color": stage.color,
            "status": status,
            "approvals_required": required,
            "approvals_received": received,
            "is_complete": is_stage_complete(received, required),
            "user_approvals": [_as_dict(a) for a in approvals.get(stage.order, [])],
        })

    return {
        "current_stage": current_stage(rows),
        "overall_status": overall_status(rows),
        "per_stage": per_stage,
    }
