"""
Workflow stage validation and the WorkflowStages value object.

Pure functions, no database.
"""

import pytest

from aiproval.core.exceptions import ValidationError
from aiproval.core.stages import ORDER_ERROR, STAGE_COLORS, Stage, WorkflowStages, validate_stages


def _stage(order, name="Review", color="blue", **extra):
    return {"order": order, "name": name, "color": color, **extra}


class TestValidateStages:
    def test_valid_list_has_no_reasons(self):
        assert validate_stages([_stage(1), _stage(2, "Sign-off", "green")]) == []

    @pytest.mark.parametrize("raw", [None, [], "stages", {"order": 1}])
    def test_empty_or_not_a_list(self, raw):
        assert validate_stages(raw) == ["Workflow must have at least one stage"]

    def test_missing_name(self):
        reasons = validate_stages([_stage(1, name="  ")])
        assert "Stage 1 must have a name" in reasons

    def test_gap_in_orders(self):
        assert ORDER_ERROR in validate_stages([_stage(1), _stage(3)])

    def test_duplicate_orders(self):
        assert ORDER_ERROR in validate_stages([_stage(1), _stage(1)])

    def test_orders_must_start_at_one(self):
        assert ORDER_ERROR in validate_stages([_stage(2)])

    def test_non_integer_order(self):
        assert ORDER_ERROR in validate_stages([_stage("1")])

    def test_invalid_color_lists_allowed_colors(self):
        reasons = validate_stages([_stage(1, color="pink")])
        assert reasons == [
            "Stage 1 has invalid color. Must be one of: "
            "yellow, green, blue, purple, red, orange, gray"
        ]

    @pytest.mark.parametrize("value", [0, -1, "2", 1.5, True])
    def test_invalid_approvals_required(self, value):
        reasons = validate_stages([_stage(1, approvals_required=value)])
        assert reasons == ["Stage 1 approvals_required must be a positive integer"]

    def test_collects_every_problem(self):
        reasons = validate_stages([_stage(1, name="", color="pink"), _stage(5)])
        assert "Stage 1 must have a name" in reasons
        assert any("invalid color" in r for r in reasons)
        assert ORDER_ERROR in reasons


class TestWorkflowStages:
    def test_from_raw_builds_immutable_stages(self):
        stages = WorkflowStages.from_raw([
            _stage(1, "  Design  ", description=" first pass "),
            _stage(2, "Legal", "red", approvals_required=2),
        ])
        assert len(stages) == 2
        first = stages.first
        assert first == Stage(order=1, name="Design", color="blue", description="first pass")
        assert stages.get(2).approvals_required == 2
        with pytest.raises(AttributeError):
            first.name = "Other"

    def test_from_raw_raises_with_details(self):
        with pytest.raises(ValidationError) as exc:
            WorkflowStages.from_raw([_stage(1), _stage(3)])
        assert str(exc.value) == ORDER_ERROR
        assert exc.value.details == {"stages": [ORDER_ERROR]}

    def test_from_stored_revalidates(self):
        with pytest.raises(ValidationError):
            WorkflowStages.from_stored([{"order": 1, "name": "x", "color": "chartreuse"}])

    def test_lookup_helpers(self):
        stages = WorkflowStages.from_raw([_stage(1), _stage(2), _stage(3)])
        assert stages.has(3)
        assert not stages.has(4)
        assert not stages.has(0)
        assert stages.next_after(1).order == 2
        assert stages.next_after(3) is None
        assert [s.order for s in stages] == [1, 2, 3]

    def test_to_list_round_trips_defaults(self):
        stages = WorkflowStages.from_raw([_stage(1)])
        assert stages.to_list() == [{
            "order": 1, "name": "Review", "color": "blue",
            "approvals_required": 1, "description": None,
        }]

    def test_every_documented_color_is_accepted(self):
        raw = [_stage(i, color=c) for i, c in enumerate(STAGE_COLORS, 1)]
        assert len(WorkflowStages.from_raw(raw)) == len(STAGE_COLORS)
