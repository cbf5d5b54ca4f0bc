"""
Error Taxonomy

Every failure in the orchestration core is recovered locally and ends up as a
well-formed response. These classes name the failure kinds so handlers and
collaborators can signal them explicitly.
"""

from typing import Any, Optional


class BrainError(Exception):
    """Base class for all Second Brain errors"""


class HandlerError(BrainError):
    """A domain handler could not complete its action."""

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.data = data


class AuthRequiredError(BrainError):
    """A domain handler needs the user to log in first."""

    def __init__(self, message: str = "Authentication required", login_url: Optional[str] = None):
        super().__init__(message)
        self.login_url = login_url


class PolicyViolation(BrainError):
    """A proposed action breaks a standing policy rule."""

    def __init__(self, reason: str, action_type: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.action_type = action_type


class GenerationFailure(BrainError):
    """The text generation provider failed or is unavailable."""


class UnknownDomainError(BrainError, ValueError):
    """A handler was registered for a domain outside the known set."""
