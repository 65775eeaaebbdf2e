"""
Journal entry workflow state machine.

TRANSITIONS is the single source of truth for which status
changes exist, who may request them, and what they record.
decide() is a pure function over that table: it touches no
database and no clock of its own, so the service and the tests
both drive it directly.

    DRAFT --SUBMIT--> PENDING --APPROVE--> APPROVED --CONFIRM--> CONFIRMED
                         |
                         +--REJECT--> DRAFT
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from bookkeeping.errors import ForbiddenError, InvalidStateError, ValidationError
from bookkeeping.models.enums import EntryStatus, Role, WorkflowEvent

ANY_ROLE = frozenset(Role)
APPROVERS = frozenset({Role.MANAGER, Role.ADMIN})


class SideEffect(str, enum.Enum):
    """Audit fields a transition writes on the entry."""
    NONE = "NONE"
    APPROVAL = "APPROVAL"
    REJECTION = "REJECTION"
    CONFIRMATION = "CONFIRMATION"


@dataclass(frozen=True)
class Transition:
    event: WorkflowEvent
    from_status: EntryStatus
    to_status: EntryStatus
    allowed_roles: frozenset[Role]
    balance_required: bool
    side_effect: SideEffect


TRANSITIONS: tuple[Transition, ...] = (
    Transition(
        event=WorkflowEvent.SUBMIT,
        from_status=EntryStatus.DRAFT,
        to_status=EntryStatus.PENDING,
        allowed_roles=ANY_ROLE,
        balance_required=True,
        side_effect=SideEffect.NONE,
    ),
    Transition(
        event=WorkflowEvent.APPROVE,
        from_status=EntryStatus.PENDING,
        to_status=EntryStatus.APPROVED,
        allowed_roles=APPROVERS,
        balance_required=True,
        side_effect=SideEffect.APPROVAL,
    ),
    Transition(
        event=WorkflowEvent.REJECT,
        from_status=EntryStatus.PENDING,
        to_status=EntryStatus.DRAFT,
        allowed_roles=APPROVERS,
        balance_required=False,
        side_effect=SideEffect.REJECTION,
    ),
    Transition(
        event=WorkflowEvent.CONFIRM,
        from_status=EntryStatus.APPROVED,
        to_status=EntryStatus.CONFIRMED,
        allowed_roles=APPROVERS,
        balance_required=True,
        side_effect=SideEffect.CONFIRMATION,
    ),
)

TRANSITION_TABLE: dict[tuple[WorkflowEvent, EntryStatus], Transition] = {
    (t.event, t.from_status): t for t in TRANSITIONS
}

# Statuses in which header and lines may still change.
EDITABLE_STATUSES = frozenset({EntryStatus.DRAFT})

# No transition leaves these.
TERMINAL_STATUSES = frozenset(
    status for status in EntryStatus
    if not any(t.from_status == status for t in TRANSITIONS)
)


@dataclass(frozen=True)
class StatusChange:
    """The outcome of a permitted transition, ready to apply to an entry."""
    transition: Transition
    from_status: EntryStatus
    to_status: EntryStatus
    fields: dict = field(default_factory=dict)

    @property
    def event(self) -> WorkflowEvent:
        return self.transition.event


def allowed_roles(event: WorkflowEvent) -> frozenset[Role]:
    """Every role that may request this event from some status."""
    roles: frozenset[Role] = frozenset()
    for t in TRANSITIONS:
        if t.event == event:
            roles |= t.allowed_roles
    return roles


def available_events(status: EntryStatus, role: Role) -> list[WorkflowEvent]:
    """
    Events this role could request on an entry in this status.

    A display hint only: balance and reason are not checked here,
    and decide() remains the authority.
    """
    return [
        t.event for t in TRANSITIONS
        if t.from_status == status and role in t.allowed_roles
    ]


def _side_effect_fields(
    side_effect: SideEffect,
    actor: str,
    now: datetime,
    reason: str | None,
) -> dict:
    if side_effect == SideEffect.APPROVAL:
        return {"approved_by": actor, "approved_at": now}
    if side_effect == SideEffect.REJECTION:
        return {
            "rejected_reason": reason,
            "rejected_by": actor,
            "rejected_at": now,
            "approved_by": None,
            "approved_at": None,
        }
    if side_effect == SideEffect.CONFIRMATION:
        return {"confirmed_by": actor, "confirmed_at": now}
    return {}


def decide(
    status: EntryStatus,
    event: WorkflowEvent,
    role: Role,
    imbalance: Decimal,
    actor: str,
    now: datetime,
    reason: str | None = None,
) -> StatusChange:
    """
    Decide whether `role` may move an entry from `status` via `event`.

    Checks run in a fixed order so that the error a caller sees
    does not depend on anything it is not allowed to know:
    1. role      -> ForbiddenError, whatever the entry's status
    2. status    -> InvalidStateError naming the current status
    3. reason    -> ValidationError for a blank REJECT reason
    4. balance   -> ValidationError carrying the signed imbalance
    """
    if role not in allowed_roles(event):
        raise ForbiddenError(
            f"Role {role.value} is not permitted to {event.value} journal entries"
        )

    transition = TRANSITION_TABLE.get((event, status))
    if transition is None:
        raise InvalidStateError(
            f"Cannot {event.value} a journal entry in status {status.value}",
            status=status,
        )

    if transition.side_effect == SideEffect.REJECTION:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")

    if transition.balance_required and imbalance != 0:
        raise ValidationError(
            f"Journal entry does not balance: imbalance={imbalance}"
        )

    return StatusChange(
        transition=transition,
        from_status=status,
        to_status=transition.to_status,
        fields=_side_effect_fields(transition.side_effect, actor, now, reason),
    )
