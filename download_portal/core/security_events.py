"""Structured security event logging.

All security events follow a consistent schema:
- timestamp: ISO8601 UTC timestamp
- event_type: Hierarchical event type (e.g., security.auth.login_success)
- severity: info, warning, error, critical
- user_id: User who triggered the event (if known)
- ip_address / user_agent: Client details
- details: Event-specific additional data

Download tokens are bearer capabilities; events reference the token row id,
never the token string.

Usage:
    from download_portal.core.security_events import SecurityEventLogger

    events = SecurityEventLogger()
    events.log_login_success(user_id="...", ip_address="...")
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

security_logger = logging.getLogger("security.events")


class EventSeverity(str, Enum):
    """Security event severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class SecurityEventType(str, Enum):
    """Enumeration of all security event types.

    Hierarchical naming: category.subcategory.event
    """
    # Authentication events
    AUTH_LOGIN_SUCCESS = "security.auth.login_success"
    AUTH_LOGIN_FAILURE = "security.auth.login_failure"
    AUTH_LOGOUT = "security.auth.logout"
    AUTH_SESSION_INVALID = "security.auth.session_invalid"

    # Admin events
    ADMIN_USER_CREATED = "security.admin.user_created"

    # Download token events
    DOWNLOAD_TOKEN_CREATED = "security.download.token_created"
    DOWNLOAD_TOKEN_REDEEMED = "security.download.token_redeemed"
    DOWNLOAD_TOKEN_REPLAYED = "security.download.token_replayed"
    DOWNLOAD_TOKEN_UNKNOWN = "security.download.token_unknown"

    # File access events
    ACCESS_PATH_MALFORMED = "security.access.path_malformed"
    ACCESS_PATH_TRAVERSAL = "security.access.path_traversal"


class SecurityEventLogger:
    """Structured security event logger.

    Logs security events in a consistent JSON format suitable for
    SIEM ingestion.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or security_logger

    def _log_event(
        self,
        event_type: SecurityEventType,
        severity: EventSeverity,
        user_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Log a security event with structured data.

        Returns:
            The logged event data for testing/verification
        """
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.value,
            "severity": severity.value,
            "user_id": user_id,
            "ip_address": ip_address,
            "user_agent": user_agent[:500] if user_agent else None,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details or {},
        }

        log_level = {
            EventSeverity.INFO: logging.INFO,
            EventSeverity.WARNING: logging.WARNING,
            EventSeverity.ERROR: logging.ERROR,
            EventSeverity.CRITICAL: logging.CRITICAL,
        }.get(severity, logging.INFO)

        self.logger.log(log_level, json.dumps(event))
        return event

    # Authentication events

    def log_login_success(
        self,
        user_id: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """Log successful login."""
        return self._log_event(
            event_type=SecurityEventType.AUTH_LOGIN_SUCCESS,
            severity=EventSeverity.INFO,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

    def log_login_failure(
        self,
        username: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
        reason: str = "invalid_credentials",
    ) -> dict[str, Any]:
        """Log failed login attempt."""
        return self._log_event(
            event_type=SecurityEventType.AUTH_LOGIN_FAILURE,
            severity=EventSeverity.WARNING,
            ip_address=ip_address,
            user_agent=user_agent,
            details={"username": username, "reason": reason},
        )

    def log_logout(self, user_id: str, ip_address: str | None = None) -> dict[str, Any]:
        return self._log_event(
            event_type=SecurityEventType.AUTH_LOGOUT,
            severity=EventSeverity.INFO,
            user_id=user_id,
            ip_address=ip_address,
        )

    def log_session_invalid(self, reason: str, user_id: str | None = None) -> dict[str, Any]:
        """Log a signed cookie whose server-side session is gone or revoked."""
        return self._log_event(
            event_type=SecurityEventType.AUTH_SESSION_INVALID,
            severity=EventSeverity.WARNING,
            user_id=user_id,
            details={"reason": reason},
        )

    def log_user_created(self, user_id: str, username: str) -> dict[str, Any]:
        return self._log_event(
            event_type=SecurityEventType.ADMIN_USER_CREATED,
            severity=EventSeverity.INFO,
            resource_type="user",
            resource_id=user_id,
            details={"username": username},
        )

    # Download token events

    def log_download_token_created(
        self,
        user_id: str,
        token_id: str,
        file_id: str,
    ) -> dict[str, Any]:
        """Log download token creation."""
        return self._log_event(
            event_type=SecurityEventType.DOWNLOAD_TOKEN_CREATED,
            severity=EventSeverity.INFO,
            user_id=user_id,
            resource_type="download_token",
            resource_id=token_id,
            details={"file_id": file_id},
        )

    def log_download_token_redeemed(
        self,
        token_id: str,
        file_id: str,
        issued_by_user_id: str,
    ) -> dict[str, Any]:
        """Log the one successful redemption of a token."""
        return self._log_event(
            event_type=SecurityEventType.DOWNLOAD_TOKEN_REDEEMED,
            severity=EventSeverity.INFO,
            user_id=issued_by_user_id,
            resource_type="download_token",
            resource_id=token_id,
            details={"file_id": file_id},
        )

    def log_download_token_replayed(self, token_id: str, file_id: str) -> dict[str, Any]:
        """Log an attempt to redeem an already used token."""
        return self._log_event(
            event_type=SecurityEventType.DOWNLOAD_TOKEN_REPLAYED,
            severity=EventSeverity.WARNING,
            resource_type="download_token",
            resource_id=token_id,
            details={"file_id": file_id},
        )

    def log_download_token_unknown(self) -> dict[str, Any]:
        return self._log_event(
            event_type=SecurityEventType.DOWNLOAD_TOKEN_UNKNOWN,
            severity=EventSeverity.WARNING,
            resource_type="download_token",
        )

    # File access events

    def log_malformed_path(self, requested_path: str) -> dict[str, Any]:
        return self._log_event(
            event_type=SecurityEventType.ACCESS_PATH_MALFORMED,
            severity=EventSeverity.WARNING,
            resource_type="file",
            details={"requested_path": requested_path[:1024]},
        )

    def log_path_traversal(self, requested_path: str, resolved_path: str) -> dict[str, Any]:
        """Log a path that resolved outside the download root (potential attack)."""
        return self._log_event(
            event_type=SecurityEventType.ACCESS_PATH_TRAVERSAL,
            severity=EventSeverity.CRITICAL,
            resource_type="file",
            details={
                "requested_path": requested_path[:1024],
                "resolved_path": resolved_path[:1024],
            },
        )


# Default instance for convenience
security_events = SecurityEventLogger()
