"""Domain error taxonomy.

Services raise these (or plain ``ValueError`` / ``PermissionError``);
routers let them propagate and the global handlers in
``wocboard.middleware.error_handler`` render them as JSON.
"""

from __future__ import annotations


class ValidationError(ValueError):
    """Missing or malformed input (400)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(LookupError):
    """Referenced user / project / pull request / badge does not exist (404)."""


class ConflictError(ValueError):
    """Uniqueness violation: duplicate github id, email, username, repo (409)."""


class ExternalServiceError(Exception):
    """An external dependency (PR source, identity provider) failed (503)."""

    status_code = 503

    def __init__(self, message: str, *, status: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class LimitExceededError(Exception):
    """A per-user quota was exhausted (429)."""
