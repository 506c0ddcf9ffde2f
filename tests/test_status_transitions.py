import pytest

from models.telephony import MessageStatus as S
from telephony.status import coerce_reported_status, decide_transition


@pytest.mark.parametrize(
    "current,new",
    [
        (S.QUEUED, S.SENT),
        (S.QUEUED, S.DELIVERED),
        (S.QUEUED, S.FAILED),
        (S.QUEUED, S.UNDELIVERED),
        (S.SENT, S.DELIVERED),
        (S.SENT, S.FAILED),
        (S.SENT, S.UNDELIVERED),
    ],
)
def test_allowed_transitions(current, new):
    assert decide_transition(current, new) == (True, "ok")


@pytest.mark.parametrize("terminal", [S.DELIVERED, S.FAILED, S.UNDELIVERED])
def test_terminal_states_accept_nothing(terminal):
    for new in S:
        assert decide_transition(terminal, new) == (False, "terminal")


def test_repeats_and_regressions_are_stale():
    assert decide_transition(S.QUEUED, S.QUEUED) == (False, "stale")
    assert decide_transition(S.SENT, S.SENT) == (False, "stale")
    assert decide_transition(S.SENT, S.QUEUED) == (False, "stale")


def test_coerce_reported_status():
    assert coerce_reported_status("delivered") == S.DELIVERED
    assert coerce_reported_status(" Undelivered ") == S.UNDELIVERED
    assert coerce_reported_status("receiving") == S.SENT
    assert coerce_reported_status("") == S.SENT
    assert coerce_reported_status(None) == S.SENT
