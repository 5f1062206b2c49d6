"""Operator login against the configured admin token."""

from __future__ import annotations

import secrets
import threading
from typing import Optional

from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger, log_fields


logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when provided token is invalid."""


class AuthService:
    """Issues session tokens and maps them back to the operator who logged in.

    The operator name is what assignment records store as `assigned_by`.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._sessions: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token)

    def _expected_token(self) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        return self._settings.admin_token

    def login(self, provided_admin_token: str, operator: str | None = None) -> str:
        expected = self._expected_token()
        if not secrets.compare_digest(provided_admin_token, expected):
            raise InvalidAdminTokenError("Invalid admin token")
        name = (operator or "").strip() or self._settings.default_operator
        session_token = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_token] = name
        logger.info("Operator logged in | %s", log_fields(operator=name))
        return session_token

    def resolve_operator(self, bearer_token: str | None) -> str:
        """Return the operator behind `bearer_token`; the default one when auth is off."""
        if not self.auth_enabled:
            return self._settings.default_operator
        if not bearer_token:
            raise InvalidAdminTokenError("No active session. Login first.")
        with self._lock:
            for session_token, operator in self._sessions.items():
                if secrets.compare_digest(bearer_token, session_token):
                    return operator
        raise InvalidAdminTokenError("Invalid bearer token")

    def logout(self, bearer_token: str) -> None:
        with self._lock:
            operator = self._sessions.pop(bearer_token, None)
        if operator is not None:
            logger.info("Operator logged out | %s", log_fields(operator=operator))
