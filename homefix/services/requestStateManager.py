"""
Request State Manager
=====================

Finite state machine governing all valid service request status
transitions. Every status change MUST go through ``validate_transition``
before being persisted.

State machine overview::

    pending --> assigned --> in_progress --> completed

    pending  --> cancelled
    assigned --> cancelled

``completed`` and ``cancelled`` are terminal.

Guards enforce that only the correct actor type can trigger certain
transitions. Assignment (pending -> assigned) belongs to the assignment
engine, which acts as SYSTEM.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from homefix.models.service_request import RequestStatus


# ---------------------------------------------------------------------------
# Actor types for guard enforcement
# ---------------------------------------------------------------------------

class ActorType(str, enum.Enum):
    RESIDENT = "resident"
    PROVIDER = "provider"
    SYSTEM = "system"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Transition guard result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TransitionResult:
    """Result of a transition validation attempt."""
    allowed: bool
    reason: str | None = None


# ---------------------------------------------------------------------------
# Transition definitions
# ---------------------------------------------------------------------------

VALID_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {
        RequestStatus.ASSIGNED,
        RequestStatus.CANCELLED,
    },
    RequestStatus.ASSIGNED: {
        RequestStatus.IN_PROGRESS,
        RequestStatus.CANCELLED,
    },
    RequestStatus.IN_PROGRESS: {
        RequestStatus.COMPLETED,
    },
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}

TERMINAL_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.COMPLETED,
    RequestStatus.CANCELLED,
})

# Statuses in which each actor may cancel
_CANCELLABLE_BY: dict[ActorType, frozenset[RequestStatus]] = {
    ActorType.RESIDENT: frozenset({RequestStatus.PENDING, RequestStatus.ASSIGNED}),
    ActorType.PROVIDER: frozenset({RequestStatus.ASSIGNED}),
    ActorType.SYSTEM: frozenset({RequestStatus.PENDING, RequestStatus.ASSIGNED}),
    ActorType.ADMIN: frozenset({RequestStatus.PENDING, RequestStatus.ASSIGNED}),
}

_PROVIDER_SIDE: frozenset[ActorType] = frozenset({
    ActorType.PROVIDER,
    ActorType.SYSTEM,
    ActorType.ADMIN,
})


# ---------------------------------------------------------------------------
# Guard functions
# ---------------------------------------------------------------------------

def _guard_assign(actor_type: ActorType) -> TransitionResult:
    """Only the assignment engine (system) or an admin assigns providers."""
    if actor_type not in (ActorType.SYSTEM, ActorType.ADMIN):
        return TransitionResult(
            allowed=False,
            reason="Only the system or an admin can assign a provider.",
        )
    return TransitionResult(allowed=True)


def _guard_cancel(current: RequestStatus, actor_type: ActorType) -> TransitionResult:
    allowed_from = _CANCELLABLE_BY.get(actor_type, frozenset())
    if current in allowed_from:
        return TransitionResult(allowed=True)
    return TransitionResult(
        allowed=False,
        reason=(
            f"{actor_type.value.capitalize()} cannot cancel a request in "
            f"'{current.value}' status. Cancellation is only allowed in: "
            f"{', '.join(s.value for s in sorted(allowed_from, key=lambda s: s.value)) or 'none'}."
        ),
    )


def _guard_start_work(actor_type: ActorType) -> TransitionResult:
    """Only a provider can start work."""
    if actor_type not in _PROVIDER_SIDE:
        return TransitionResult(
            allowed=False,
            reason="Only a provider can start work on a request.",
        )
    return TransitionResult(allowed=True)


def _guard_complete(actor_type: ActorType) -> TransitionResult:
    """Only a provider or system can mark a request as completed."""
    if actor_type not in _PROVIDER_SIDE:
        return TransitionResult(
            allowed=False,
            reason="Only a provider or system can complete a request.",
        )
    return TransitionResult(allowed=True)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_transition(
    current_status: RequestStatus,
    new_status: RequestStatus,
    actor_type: ActorType = ActorType.SYSTEM,
) -> TransitionResult:
    """Validate whether a request status transition is allowed.

    Checks two layers:
    1. Is the transition structurally valid per the state machine?
    2. Does the actor have permission for this specific transition (guards)?

    Returns a ``TransitionResult`` with ``allowed=True`` if the transition
    is permitted, or ``allowed=False`` with a human-readable ``reason``.
    """
    allowed_targets = VALID_TRANSITIONS.get(current_status, set())
    if new_status not in allowed_targets:
        return TransitionResult(
            allowed=False,
            reason=(
                f"Invalid transition: '{current_status.value}' -> '{new_status.value}'. "
                f"Allowed transitions from '{current_status.value}': "
                f"{', '.join(s.value for s in sorted(allowed_targets, key=lambda s: s.value)) or 'none'}."
            ),
        )

    if new_status == RequestStatus.ASSIGNED:
        return _guard_assign(actor_type)

    if new_status == RequestStatus.CANCELLED:
        return _guard_cancel(current_status, actor_type)

    if new_status == RequestStatus.IN_PROGRESS:
        return _guard_start_work(actor_type)

    if new_status == RequestStatus.COMPLETED:
        return _guard_complete(actor_type)

    return TransitionResult(allowed=True)


def get_valid_transitions(
    current_status: RequestStatus,
    actor_type: ActorType = ActorType.SYSTEM,
) -> list[RequestStatus]:
    """Return the statuses the given actor can move the request to next.

    Useful for UI hints (e.g. showing available actions to the user).
    """
    candidates = VALID_TRANSITIONS.get(current_status, set())
    valid: list[RequestStatus] = []
    for target in candidates:
        result = validate_transition(current_status, target, actor_type)
        if result.allowed:
            valid.append(target)
    return sorted(valid, key=lambda s: s.value)


def is_terminal(status: RequestStatus) -> bool:
    return status in TERMINAL_STATUSES
