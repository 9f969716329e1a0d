"""Tests for the WithdrawalStateMachine domain guard.

These tests verify that:
    1. The success paths reach their terminal states.
    2. Blockhash expiry loops back to BUILDING.
    3. Out-of-order transitions are blocked.
    4. Every visited state is recorded in order.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from zknon_relay.domain.state_machine import WithdrawalStateMachine


class TestHappyPath:
    """VALIDATING -> SUCCEEDED."""

    def test_full_lifecycle(self) -> None:
        sm = WithdrawalStateMachine()
        assert sm.status == "VALIDATING"

        sm.validated()
        assert sm.status == "BUILDING"

        sm.built()
        assert sm.status == "SUBMITTING"

        sm.broadcast_accepted()
        assert sm.status == "CONFIRMING"

        sm.finality_reached()
        assert sm.status == "SUCCEEDED"
        assert sm.is_final

    def test_unconfirmed_is_terminal(self) -> None:
        sm = WithdrawalStateMachine("CONFIRMING")
        sm.confirmation_timed_out()
        assert sm.status == "SUCCEEDED_UNCONFIRMED"
        assert sm.is_final


class TestExpiryPath:
    def test_expired_on_submit_rebuilds(self) -> None:
        sm = WithdrawalStateMachine("SUBMITTING")
        sm.reference_expired()
        assert sm.status == "BUILDING"

    def test_expired_while_confirming_rebuilds(self) -> None:
        sm = WithdrawalStateMachine("CONFIRMING")
        sm.reference_expired()
        assert sm.status == "BUILDING"

    def test_history_records_the_loop(self) -> None:
        sm = WithdrawalStateMachine()
        sm.validated()
        sm.built()
        sm.reference_expired()
        sm.built()
        sm.broadcast_accepted()
        sm.finality_reached()
        assert sm.history == [
            "VALIDATING", "BUILDING", "SUBMITTING", "BUILDING",
            "SUBMITTING", "CONFIRMING", "SUCCEEDED",
        ]


class TestFailurePath:
    @pytest.mark.parametrize("status", ["VALIDATING", "BUILDING", "SUBMITTING", "CONFIRMING"])
    def test_rejected_from_any_non_final(self, status: str) -> None:
        sm = WithdrawalStateMachine(status)
        sm.rejected()
        assert sm.status == "FAILED"


class TestInvalidTransitions:
    def test_cannot_confirm_before_broadcast(self) -> None:
        sm = WithdrawalStateMachine("BUILDING")
        with pytest.raises(TransitionNotAllowed):
            sm.finality_reached()

    def test_cannot_skip_validation(self) -> None:
        sm = WithdrawalStateMachine()
        with pytest.raises(TransitionNotAllowed):
            sm.built()

    def test_cannot_expire_while_building(self) -> None:
        sm = WithdrawalStateMachine("BUILDING")
        with pytest.raises(TransitionNotAllowed):
            sm.reference_expired()

    @pytest.mark.parametrize("status", ["SUCCEEDED", "SUCCEEDED_UNCONFIRMED", "FAILED"])
    def test_terminal_states_are_final(self, status: str) -> None:
        sm = WithdrawalStateMachine(status)
        assert sm.is_final
        with pytest.raises(TransitionNotAllowed):
            sm.rejected()

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            WithdrawalStateMachine("PENDING")


class TestAllowedEvents:
    def test_confirming_events(self) -> None:
        sm = WithdrawalStateMachine("CONFIRMING")
        assert set(sm.get_allowed_events()) == {
            "finality_reached",
            "confirmation_timed_out",
            "reference_expired",
            "rejected",
        }

    def test_final_state_has_no_events(self) -> None:
        sm = WithdrawalStateMachine("SUCCEEDED")
        assert sm.get_allowed_events() == []
