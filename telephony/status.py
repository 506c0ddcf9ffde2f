from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Tuple

from models.telephony import MessageStatus

# Providers may skip intermediate reports, so queued can jump straight to a
# terminal state. Terminal states have no outgoing edges.
ALLOWED_TRANSITIONS: Dict[MessageStatus, FrozenSet[MessageStatus]] = {
    MessageStatus.QUEUED: frozenset(
        {MessageStatus.SENT, MessageStatus.DELIVERED, MessageStatus.FAILED, MessageStatus.UNDELIVERED}
    ),
    MessageStatus.SENT: frozenset({MessageStatus.DELIVERED, MessageStatus.FAILED, MessageStatus.UNDELIVERED}),
    MessageStatus.DELIVERED: frozenset(),
    MessageStatus.FAILED: frozenset(),
    MessageStatus.UNDELIVERED: frozenset(),
}

REASON_OK = "ok"
REASON_TERMINAL = "terminal"
REASON_STALE = "stale"
REASON_NOT_FOUND = "not_found"


def decide_transition(current: MessageStatus, new: MessageStatus) -> Tuple[bool, str]:
    """Return (apply, reason) for moving a message from ``current`` to ``new``.

    Repeats and out-of-order reports are not errors, just no-ops.
    """
    if current.is_terminal:
        return False, REASON_TERMINAL
    if new in ALLOWED_TRANSITIONS[current]:
        return True, REASON_OK
    return False, REASON_STALE


def coerce_reported_status(raw: Optional[str]) -> MessageStatus:
    """Map a provider status string onto MessageStatus; anything unknown reads as ``sent``."""
    try:
        return MessageStatus((raw or "").strip().lower())
    except ValueError:
        return MessageStatus.SENT
