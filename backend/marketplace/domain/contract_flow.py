"""
Hiring state machines: application status, interview sub-state, contract handshake.

The contract goes ``not_created -> pending_driver -> pending_owner -> signed``;
the driver always signs first.
"""

from __future__ import annotations

from typing import FrozenSet, Mapping

from ..core.enums import ApplicationStatus, ContractParty, ContractStatus, InterviewStatus
from ..core.exceptions import InvalidStateTransitionException

_A = ApplicationStatus

# Owner-driven application moves; withdrawal is handled separately
_APPLICATION_TRANSITIONS: Mapping[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    _A.PENDING: frozenset({_A.SHORTLISTED, _A.REJECTED}),
    _A.SHORTLISTED: frozenset({_A.INTERVIEW_SCHEDULED, _A.REJECTED}),
    _A.INTERVIEW_SCHEDULED: frozenset({_A.INTERVIEW_COMPLETED, _A.REJECTED}),
    _A.INTERVIEW_COMPLETED: frozenset({_A.REJECTED}),
    _A.ACCEPTED: frozenset(),
    _A.REJECTED: frozenset(),
    _A.WITHDRAWN: frozenset(),
}

TERMINAL_APPLICATION_STATUSES = frozenset({_A.ACCEPTED, _A.REJECTED, _A.WITHDRAWN})

CONTRACT_ELIGIBLE_STATUSES = frozenset(
    {_A.SHORTLISTED, _A.INTERVIEW_SCHEDULED, _A.INTERVIEW_COMPLETED}
)

_INTERVIEW_TRANSITIONS: Mapping[InterviewStatus, FrozenSet[InterviewStatus]] = {
    InterviewStatus.SCHEDULED: frozenset(
        {InterviewStatus.COMPLETED, InterviewStatus.CANCELLED, InterviewStatus.NO_SHOW}
    ),
    InterviewStatus.COMPLETED: frozenset(),
    InterviewStatus.CANCELLED: frozenset(),
    InterviewStatus.NO_SHOW: frozenset(),
}

_SIGNER_TURN = {
    ContractParty.DRIVER: ContractStatus.PENDING_DRIVER,
    ContractParty.OWNER: ContractStatus.PENDING_OWNER,
}

_AFTER_SIGNATURE = {
    ContractParty.DRIVER: ContractStatus.PENDING_OWNER,
    ContractParty.OWNER: ContractStatus.SIGNED,
}


def validate_application_transition(current: ApplicationStatus, target: ApplicationStatus) -> None:
    if target not in _APPLICATION_TRANSITIONS.get(current, frozenset()):
        raise InvalidStateTransitionException(
            f"Cannot move application from {current.value} to {target.value}",
            current=current.value,
            requested=target.value,
        )


def validate_withdrawal(current: ApplicationStatus) -> None:
    if current in TERMINAL_APPLICATION_STATUSES:
        raise InvalidStateTransitionException(
            f"Cannot withdraw an application that is {current.value}",
            current=current.value,
            requested=_A.WITHDRAWN.value,
        )


def validate_interview_transition(current: InterviewStatus, target: InterviewStatus) -> None:
    if target not in _INTERVIEW_TRANSITIONS.get(current, frozenset()):
        raise InvalidStateTransitionException(
            f"Cannot move interview from {current.value} to {target.value}",
            current=current.value,
            requested=target.value,
        )


def validate_contract_creation(
    application_status: ApplicationStatus, contract_status: ContractStatus
) -> None:
    if contract_status != ContractStatus.NOT_CREATED:
        raise InvalidStateTransitionException(
            "A contract already exists for this application",
            current=contract_status.value,
            requested=ContractStatus.PENDING_DRIVER.value,
        )
    if application_status not in CONTRACT_ELIGIBLE_STATUSES:
        raise InvalidStateTransitionException(
            f"Cannot send a contract for an application that is {application_status.value}",
            current=application_status.value,
            requested=ContractStatus.PENDING_DRIVER.value,
        )


def status_after_signature(
    contract_status: ContractStatus, party: ContractParty, already_signed: bool
) -> ContractStatus:
    """
    Contract status once ``party`` signs.

    Raises:
        InvalidStateTransitionException: out of turn, or this party already signed
    """
    if already_signed:
        raise InvalidStateTransitionException(
            "Contract already signed",
            current=contract_status.value,
            details={"party": party.value},
        )
    if contract_status != _SIGNER_TURN[party]:
        raise InvalidStateTransitionException(
            "Contract is not pending your signature",
            current=contract_status.value,
            details={"party": party.value},
        )
    return _AFTER_SIGNATURE[party]
