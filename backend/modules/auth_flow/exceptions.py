"""
Auth flow exceptions.
"""

from shared.exceptions import AlumniVerseError


class InvalidTransitionError(AlumniVerseError):
    """Raised when a step asks for a transition the flow does not allow."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot go from '{current}' to '{requested}'",
            code="INVALID_TRANSITION",
            details={"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested
