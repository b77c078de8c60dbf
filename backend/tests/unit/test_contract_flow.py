import pytest

from marketplace.core.enums import ApplicationStatus as A
from marketplace.core.enums import ContractParty as P
from marketplace.core.enums import ContractStatus as C
from marketplace.core.enums import InterviewStatus as I
from marketplace.core.exceptions import InvalidStateTransitionException
from marketplace.domain import contract_flow


class TestApplicationTransitions:
    @pytest.mark.parametrize(
        "current, target",
        [
            (A.PENDING, A.SHORTLISTED),
            (A.PENDING, A.REJECTED),
            (A.SHORTLISTED, A.INTERVIEW_SCHEDULED),
            (A.INTERVIEW_SCHEDULED, A.INTERVIEW_COMPLETED),
            (A.INTERVIEW_COMPLETED, A.REJECTED),
        ],
    )
    def test_allowed(self, current, target):
        contract_flow.validate_application_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (A.PENDING, A.INTERVIEW_SCHEDULED),
            (A.PENDING, A.ACCEPTED),
            (A.REJECTED, A.SHORTLISTED),
            (A.WITHDRAWN, A.PENDING),
            (A.ACCEPTED, A.REJECTED),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(InvalidStateTransitionException):
            contract_flow.validate_application_transition(current, target)

    @pytest.mark.parametrize("status", [A.ACCEPTED, A.REJECTED, A.WITHDRAWN])
    def test_terminal_cannot_withdraw(self, status):
        with pytest.raises(InvalidStateTransitionException):
            contract_flow.validate_withdrawal(status)

    def test_open_can_withdraw(self):
        contract_flow.validate_withdrawal(A.INTERVIEW_SCHEDULED)


class TestInterview:
    def test_scheduled_can_finish(self):
        for outcome in (I.COMPLETED, I.CANCELLED, I.NO_SHOW):
            contract_flow.validate_interview_transition(I.SCHEDULED, outcome)

    def test_completed_is_final(self):
        with pytest.raises(InvalidStateTransitionException):
            contract_flow.validate_interview_transition(I.COMPLETED, I.NO_SHOW)


class TestContract:
    @pytest.mark.parametrize("status", [A.SHORTLISTED, A.INTERVIEW_SCHEDULED, A.INTERVIEW_COMPLETED])
    def test_creation_allowed(self, status):
        contract_flow.validate_contract_creation(status, C.NOT_CREATED)

    def test_creation_needs_shortlist(self):
        with pytest.raises(InvalidStateTransitionException):
            contract_flow.validate_contract_creation(A.PENDING, C.NOT_CREATED)

    def test_only_one_contract(self):
        with pytest.raises(InvalidStateTransitionException):
            contract_flow.validate_contract_creation(A.SHORTLISTED, C.PENDING_DRIVER)

    def test_driver_then_owner(self):
        after_driver = contract_flow.status_after_signature(C.PENDING_DRIVER, P.DRIVER, False)
        assert after_driver == C.PENDING_OWNER
        assert contract_flow.status_after_signature(after_driver, P.OWNER, False) == C.SIGNED

    def test_owner_cannot_sign_first(self):
        with pytest.raises(InvalidStateTransitionException):
            contract_flow.status_after_signature(C.PENDING_DRIVER, P.OWNER, False)

    def test_no_double_signature(self):
        with pytest.raises(InvalidStateTransitionException):
            contract_flow.status_after_signature(C.PENDING_OWNER, P.DRIVER, True)
