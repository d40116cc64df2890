"""State machines for link attempts and batch runs."""

from enum import Enum
from typing import ClassVar

import structlog


logger = structlog.get_logger()


class LinkAttemptState(str, Enum):
    """State of a single link attempt.

    States represent the conflict-then-forced-retry lifecycle:
    - LINKING: First create call in flight
    - CONFLICT_DETECTED: The store reported the item already linked
    - FORCE_RETRY: The single forced create call is in flight
    - RESOLVED: The candidate ended linked to the topic
    - FAILED: The attempt ended without a link
    """

    LINKING = "LINKING"
    CONFLICT_DETECTED = "CONFLICT_DETECTED"
    FORCE_RETRY = "FORCE_RETRY"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


class BatchState(str, Enum):
    """State of a batch run.

    - IDLE: Batch created, nothing sent
    - RUNNING: Link attempts in progress
    - REFRESHING: Authoritative refresh in progress
    - DONE: Refresh succeeded
    - DONE_REFRESH_FAILED: Refresh failed; local state kept as best effort
    """

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    REFRESHING = "REFRESHING"
    DONE = "DONE"
    DONE_REFRESH_FAILED = "DONE_REFRESH_FAILED"


class StateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(self, machine_id: str, from_state: Enum, to_state: Enum) -> None:
        """Initialize the transition error.

        Args:
            machine_id: Identifier of the attempt or batch.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.machine_id = machine_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal state transition for '{machine_id}': "
            f"{from_state.value} -> {to_state.value}"
        )


class LinkAttemptStateMachine:
    """Manages transitions of one link attempt.

    FORCE_RETRY cannot lead back to CONFLICT_DETECTED, which caps the
    forced retry at exactly one.
    """

    VALID_TRANSITIONS: ClassVar[dict[LinkAttemptState, set[LinkAttemptState]]] = {
        LinkAttemptState.LINKING: {
            LinkAttemptState.RESOLVED,
            LinkAttemptState.CONFLICT_DETECTED,
            LinkAttemptState.FAILED,
        },
        LinkAttemptState.CONFLICT_DETECTED: {
            LinkAttemptState.RESOLVED,
            LinkAttemptState.FORCE_RETRY,
            LinkAttemptState.FAILED,
        },
        LinkAttemptState.FORCE_RETRY: {
            LinkAttemptState.RESOLVED,
            LinkAttemptState.FAILED,
        },
        LinkAttemptState.RESOLVED: set(),  # Terminal state
        LinkAttemptState.FAILED: set(),  # Terminal state
    }

    def __init__(
        self,
        attempt_id: str,
        initial_state: LinkAttemptState = LinkAttemptState.LINKING,
    ) -> None:
        """Initialize the state machine.

        Args:
            attempt_id: Identifier for logging (topic and candidate key).
            initial_state: Starting state.
        """
        self._attempt_id = attempt_id
        self._state = initial_state
        self._log = logger.bind(component="coordinator", attempt_id=attempt_id)

    @property
    def state(self) -> LinkAttemptState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return not self.VALID_TRANSITIONS[self._state]

    @property
    def can_force_retry(self) -> bool:
        """Check if the single forced retry is still available."""
        return self.can_transition_to(LinkAttemptState.FORCE_RETRY)

    def can_transition_to(self, target: LinkAttemptState) -> bool:
        """Check if a transition to the target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        return target in self.VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: LinkAttemptState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            StateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_link_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise StateTransitionError(self._attempt_id, self._state, target)

        old_state = self._state
        self._state = target
        self._log.debug(
            "link_state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_conflict_detected(self) -> None:
        """Transition to CONFLICT_DETECTED state."""
        self.transition_to(LinkAttemptState.CONFLICT_DETECTED)

    def to_force_retry(self) -> None:
        """Transition to FORCE_RETRY state."""
        self.transition_to(LinkAttemptState.FORCE_RETRY)

    def to_resolved(self) -> None:
        """Transition to RESOLVED state."""
        self.transition_to(LinkAttemptState.RESOLVED)

    def to_failed(self) -> None:
        """Transition to FAILED state."""
        self.transition_to(LinkAttemptState.FAILED)


class BatchStateMachine:
    """Manages transitions of a batch run.

    Both DONE states are terminal; a batch always reaches one of them.
    """

    VALID_TRANSITIONS: ClassVar[dict[BatchState, set[BatchState]]] = {
        BatchState.IDLE: {BatchState.RUNNING},
        BatchState.RUNNING: {BatchState.REFRESHING},
        BatchState.REFRESHING: {BatchState.DONE, BatchState.DONE_REFRESH_FAILED},
        BatchState.DONE: set(),  # Terminal state
        BatchState.DONE_REFRESH_FAILED: set(),  # Terminal state
    }

    def __init__(self, batch_id: str) -> None:
        """Initialize the state machine in IDLE state.

        Args:
            batch_id: Identifier for logging.
        """
        self._batch_id = batch_id
        self._state = BatchState.IDLE
        self._log = logger.bind(component="orchestrator", batch_id=batch_id)

    @property
    def batch_id(self) -> str:
        """Get the batch identifier."""
        return self._batch_id

    @property
    def state(self) -> BatchState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return not self.VALID_TRANSITIONS[self._state]

    def can_transition_to(self, target: BatchState) -> bool:
        """Check if a transition to the target state is valid."""
        return target in self.VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: BatchState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            StateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_batch_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise StateTransitionError(self._batch_id, self._state, target)

        old_state = self._state
        self._state = target
        self._log.info(
            "batch_state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_running(self) -> None:
        """Transition to RUNNING state."""
        self.transition_to(BatchState.RUNNING)

    def to_refreshing(self) -> None:
        """Transition to REFRESHING state."""
        self.transition_to(BatchState.REFRESHING)

    def to_done(self) -> None:
        """Transition to DONE state."""
        self.transition_to(BatchState.DONE)

    def to_done_refresh_failed(self) -> None:
        """Transition to DONE_REFRESH_FAILED state."""
        self.transition_to(BatchState.DONE_REFRESH_FAILED)
