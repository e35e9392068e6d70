import pytest

from flow_metrics.analytics.metrics.cfd import build_cfd
from flow_metrics.core.config import EngineSettings
from flow_metrics.core.errors import WorkflowConfigError
from flow_metrics.core.models import Ticket
from flow_metrics.core.workflow import (
    find_out_of_order,
    first_stamped_state,
    last_stamped_state,
    normalize_state_name,
    validate_states,
)

STATES = ("todo", "doing", "review", "done")


def test_validate_states_returns_tuple():
    assert validate_states(["todo", "done"]) == ("todo", "done")


@pytest.mark.parametrize("states", ["todo", ["todo"], ["todo", "doing", "todo"], []])
def test_validate_states_rejects_unusable_workflows(states):
    with pytest.raises(WorkflowConfigError):
        validate_states(states)


def test_workflow_errors_are_value_errors():
    with pytest.raises(ValueError):
        validate_states(["only"])


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("verif_start", "verification_start"),
        ("In Progress", "in_progress"),
        ("Done", "delivered"),
        ("custom_state", "custom_state"),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_state_name(raw, expected):
    assert normalize_state_name(raw) == expected


def test_stamped_state_lookup():
    ticket = Ticket(id="T", state_timestamps={"doing": 10.0, "review": 20.0})
    assert first_stamped_state(ticket, STATES) == "doing"
    assert last_stamped_state(ticket, STATES) == "review"
    assert first_stamped_state(Ticket(id="E"), STATES) is None


def test_find_out_of_order_ignores_gaps():
    ordered = Ticket(id="T", state_timestamps={"todo": 1.0, "review": 3.0, "done": 3.0})
    assert find_out_of_order(ordered, STATES) is None

    backwards = Ticket(id="T", state_timestamps={"todo": 5.0, "review": 3.0, "done": 9.0})
    assert find_out_of_order(backwards, STATES) == ("todo", "review")


def test_unknown_policies_rejected():
    ticket = Ticket(id="T", state_timestamps={"todo": 1.0, "done": 2.0})
    with pytest.raises(WorkflowConfigError):
        build_cfd([ticket], STATES, settings=EngineSettings(out_of_order_policy="fix"))
    with pytest.raises(WorkflowConfigError):
        build_cfd([ticket], STATES, settings=EngineSettings(tie_break="random"))
