from __future__ import annotations
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone


class InvalidTransition(ValueError):
    pass


HistoryEntry = Dict[str, Any]

IDLE = "idle"
SUBMITTING = "submitting"
SUCCEEDED = "succeeded"
FAILED = "failed"

# failed -> idle is the retry path; succeeded is terminal for a form instance
SUBMISSION_TRANSITIONS: Dict[str, List[str]] = {
    IDLE: [SUBMITTING],
    SUBMITTING: [SUCCEEDED, FAILED],
    FAILED: [IDLE],
    SUCCEEDED: [],
}


class StateMachine:
    """
    Small, generic state machine with:
      - allowed transitions map
      - history recording (with metadata)

    Usage:
      sm = StateMachine(state="idle", allowed_transitions=SUBMISSION_TRANSITIONS)
      result = sm.apply("submitting", meta={"mode": "create"})
      submission.status = result["state"]
      submission.history = result["history"]
    """

    def __init__(self, state: str, allowed_transitions: Dict[str, List[str]],
                 history: Optional[List[HistoryEntry]] = None):
        self.state = state or ""
        self.allowed_transitions = allowed_transitions or {}
        self.history: List[HistoryEntry] = list(history or [])

    def can_transition(self, to_state: str) -> bool:
        allowed = self.allowed_transitions.get(self.state, [])
        return to_state in allowed

    def apply(self, to_state: str, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Attempt to transition to `to_state`. Raises InvalidTransition.
        Returns dict with keys: state, history (full list).
        """
        to_state = (to_state or "").strip()
        if not to_state:
            raise InvalidTransition("Empty target state")

        # idempotent: if already in desired state, no-op
        if to_state == self.state:
            return {"state": self.state, "history": list(self.history)}

        if not self.can_transition(to_state):
            raise InvalidTransition(f"Invalid transition: {self.state} -> {to_state}")

        entry: HistoryEntry = {
            "from": self.state,
            "to": to_state,
            "at": datetime.now(timezone.utc).isoformat(sep=" "),
            "meta": dict(meta or {}),
        }
        self.state = to_state
        self.history.append(entry)

        return {"state": self.state, "history": list(self.history)}
