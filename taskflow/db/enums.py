"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    User roles.

    - STANDARD: manages their own tasks, messages and WhatsApp channel
    - ADMIN: additionally manages other users (role, activation)
    """
    STANDARD = "standard"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class TaskPriority(str, Enum):
    """Task and message priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """
    Task status.

    Canonical over the `completed` flag: DONE <=> completed.
    """
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class NotificationType(str, Enum):
    """Severity of an in-app notification."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ChannelState(str, Enum):
    """
    WhatsApp connection lifecycle.

    disconnected -> awaiting_scan -> connected -> disconnected
    """
    DISCONNECTED = "disconnected"
    AWAITING_SCAN = "awaiting_scan"
    CONNECTED = "connected"


class ChannelEventKind(str, Enum):
    """Events pushed by the WhatsApp bridge."""
    QR = "qr"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"
    MESSAGE = "message"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_ROLE = Role.STANDARD
DEFAULT_TASK_PRIORITY = TaskPriority.MEDIUM
DEFAULT_TASK_STATUS = TaskStatus.PENDING
