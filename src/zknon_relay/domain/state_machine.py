"""Withdrawal State Machine Guard.

Uses python-statemachine to enforce legal transitions of one withdrawal.
The orchestrator fires an event at every step, so an out-of-order step
(e.g. confirming something never broadcast) raises TransitionNotAllowed
instead of silently producing a result.

Transition table:
    VALIDATING  -> BUILDING               (validated)
    BUILDING    -> SUBMITTING             (built)
    SUBMITTING  -> CONFIRMING             (broadcast_accepted)
    SUBMITTING  -> BUILDING               (reference_expired)
    CONFIRMING  -> SUCCEEDED              (finality_reached)
    CONFIRMING  -> SUCCEEDED_UNCONFIRMED  (confirmation_timed_out)
    CONFIRMING  -> BUILDING               (reference_expired)
    any non-final -> FAILED               (rejected)
"""

from __future__ import annotations

from statemachine import State, StateMachine


class WithdrawalStateMachine(StateMachine):
    """State machine that guards the withdrawal pipeline.

    Usage:
        sm = WithdrawalStateMachine()
        sm.validated()   # transitions to BUILDING
        sm.history       # ["VALIDATING", "BUILDING"]
    """

    # --- States ---
    VALIDATING = State("VALIDATING", initial=True)
    BUILDING = State("BUILDING")
    SUBMITTING = State("SUBMITTING")
    CONFIRMING = State("CONFIRMING")
    SUCCEEDED = State("SUCCEEDED", final=True)
    SUCCEEDED_UNCONFIRMED = State("SUCCEEDED_UNCONFIRMED", final=True)
    FAILED = State("FAILED", final=True)

    # --- Events / Transitions ---
    validated = VALIDATING.to(BUILDING)
    built = BUILDING.to(SUBMITTING)
    broadcast_accepted = SUBMITTING.to(CONFIRMING)
    finality_reached = CONFIRMING.to(SUCCEEDED)
    confirmation_timed_out = CONFIRMING.to(SUCCEEDED_UNCONFIRMED)

    # A fresh blockhash restarts the build; the old signed bytes are dropped
    reference_expired = SUBMITTING.to(BUILDING) | CONFIRMING.to(BUILDING)

    rejected = (
        VALIDATING.to(FAILED)
        | BUILDING.to(FAILED)
        | SUBMITTING.to(FAILED)
        | CONFIRMING.to(FAILED)
    )

    def __init__(self, current_status: str = "VALIDATING") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: A WithdrawalStatus value. Must match one of the
                State value strings exactly.
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        self.history: list[str] = [current_status]
        super().__init__(start_value=current_status)

    def after_transition(self, target: State) -> None:
        value = str(target.value)
        if self.history[-1] != value:
            self.history.append(value)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches WithdrawalStatus)."""
        return str(self.current_state.value)

    @property
    def is_final(self) -> bool:
        return bool(self.current_state.final)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [getattr(event, "id", event.name) for event in self.allowed_events]
