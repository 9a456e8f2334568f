"""
Workflow stage value objects and validation.

A workflow's stage list is validated once, when the workflow is created or
its stages are replaced, and turned into an immutable ``WorkflowStages``.
Stage lists read back from storage go through the same constructor, so
business logic never touches a loosely-typed list of dicts.

Rules:
    - at least one stage
    - every stage has a non-empty name
    - orders are exactly 1..N in list order (no gaps, no duplicates)
    - color is one of STAGE_COLORS
    - approvals_required, when given, is a positive integer (default 1)
"""

from __future__ import annotations

from dataclasses import dataclass

from aiproval.core.exceptions import ValidationError

STAGE_COLORS = ("yellow", "green", "blue", "purple", "red", "orange", "gray")

ORDER_ERROR = "Stage orders must be sequential starting from 1"


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class Stage:
    """One step of a workflow. Embedded in Workflow.stages, never stored on its own."""

    order: int
    name: str
    color: str
    approvals_required: int = 1
    description: str | None = None

    def to_dict(self) -> dict:
        return {
            "order": self.order,
            "name": self.name,
            "color": self.color,
            "approvals_required": self.approvals_required,
            "description": self.description,
        }


def validate_stages(raw) -> list[str]:
    """Return human-readable reasons why ``raw`` is not a valid stage list.

    An empty result means the list is valid. Pure function, no side effects.
    """
    if not isinstance(raw, list) or not raw:
        return ["Workflow must have at least one stage"]

    reasons: list[str] = []
    orders_ok = True
    for i, stage in enumerate(raw, 1):
        if not isinstance(stage, dict):
            reasons.append(f"Stage {i} must be an object")
            orders_ok = False
            continue

        name = stage.get("name")
        if not isinstance(name, str) or not name.strip():
            reasons.append(f"Stage {i} must have a name")

        if stage.get("order") != i or not _is_positive_int(stage.get("order")):
            orders_ok = False

        if stage.get("color") not in STAGE_COLORS:
            reasons.append(
                f"Stage {i} has invalid color. Must be one of: {', '.join(STAGE_COLORS)}"
            )

        required = stage.get("approvals_required")
        if required is not None and not _is_positive_int(required):
            reasons.append(f"Stage {i} approvals_required must be a positive integer")

    if not orders_ok:
        reasons.append(ORDER_ERROR)
    return reasons


class WorkflowStages:
    """Validated, ordered, immutable collection of Stage objects."""

    __slots__ = ("_stages",)

    def __init__(self, stages: tuple[Stage, ...]):
        self._stages = stages

    @classmethod
    def from_raw(cls, raw) -> "WorkflowStages":
        """Validate and build. Raises ValidationError listing every problem found."""
        reasons = validate_stages(raw)
        if reasons:
            raise ValidationError(reasons[0], details={"stages": reasons})
        return cls(tuple(
            Stage(
                order=s["order"],
                name=s["name"].strip(),
                color=s["color"],
                approvals_required=s.get("approvals_required") or 1,
                description=(s.get("description") or "").strip() or None,
            )
            for s in raw
        ))

    # Stored JSON is re-validated rather than trusted.
    from_stored = from_raw

    @property
    def first(self) -> Stage:
        return self._stages[0]

    def get(self, order: int) -> Stage | None:
        if not _is_positive_int(order) or order > len(self._stages):
            return None
        return self._stages[order - 1]

    def has(self, order) -> bool:
        return self.get(order) is not None

    def next_after(self, order: int) -> Stage | None:
        return self.get(order + 1)

    def to_list(self) -> list[dict]:
        return [s.to_dict() for s in self._stages]

    def __iter__(self):
        return iter(self._stages)

    def __len__(self):
        return len(self._stages)

    def __repr__(self):
        return f"<WorkflowStages {[s.name for s in self._stages]}>"
