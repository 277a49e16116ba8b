"""Price-offer state machine. Pure logic, no DB access.

An offer starts PENDING and is answered exactly once by the seller.
ACCEPTED and REJECTED are terminal.
"""

from enum import StrEnum


class OfferStatus(StrEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class OfferDecision(StrEnum):
    ACCEPT = "accept"
    REJECT = "reject"


class InvalidOfferTransitionError(Exception):
    """Raised when an offer cannot move from its current status."""

    def __init__(self, current: str, decision: str):
        self.current = current
        self.decision = decision
        super().__init__(f"Invalid offer transition: {current} + {decision}")


# (current_status, decision) -> new_status
TRANSITIONS: dict[tuple[OfferStatus, OfferDecision], OfferStatus] = {
    (OfferStatus.PENDING, OfferDecision.ACCEPT): OfferStatus.ACCEPTED,
    (OfferStatus.PENDING, OfferDecision.REJECT): OfferStatus.REJECTED,
}


def validate_transition(current: str, decision: str) -> OfferStatus:
    """Validate and return the new status for a seller decision.

    Raises InvalidOfferTransitionError if the transition is not allowed.
    """
    try:
        key = (OfferStatus(current), OfferDecision(decision))
    except ValueError:
        raise InvalidOfferTransitionError(current, decision)

    if key not in TRANSITIONS:
        raise InvalidOfferTransitionError(current, decision)
    return TRANSITIONS[key]
