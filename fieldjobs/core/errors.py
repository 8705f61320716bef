from __future__ import annotations


class BackendError(RuntimeError):
    """Raised when the persistence backend rejects or fails a request."""


class TransitionError(ValueError):
    """Raised when a project cannot move between two statuses."""

    def __init__(self, current: object, target: object, message: str | None = None) -> None:
        detail = message or f"cannot move project from {getattr(current, 'value', current)} to {getattr(target, 'value', target)}"
        super().__init__(detail)
        self.current = current
        self.target = target
