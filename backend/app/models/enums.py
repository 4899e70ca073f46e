"""Status and category enums shared by the orchestration models."""

import enum


class Plan(str, enum.Enum):
    """Subscription plan tiers."""

    FREE = "FREE"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class ExposureStatus(str, enum.Enum):
    """Lifecycle of a discovered exposure."""

    ACTIVE = "ACTIVE"
    REMOVAL_PENDING = "REMOVAL_PENDING"
    REMOVAL_IN_PROGRESS = "REMOVAL_IN_PROGRESS"
    REMOVED = "REMOVED"
    REMOVAL_FAILED = "REMOVAL_FAILED"
    WHITELISTED = "WHITELISTED"
    MONITORING = "MONITORING"


class RemovalStatus(str, enum.Enum):
    """Lifecycle of a removal request."""

    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    COMPLETED = "COMPLETED"
    REQUIRES_MANUAL = "REQUIRES_MANUAL"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class RemovalMethod(str, enum.Enum):
    """How a removal request is carried out."""

    AUTO_FORM = "AUTO_FORM"
    AUTO_EMAIL = "AUTO_EMAIL"
    MANUAL_GUIDE = "MANUAL_GUIDE"
    API = "API"


class JobStatus(str, enum.Enum):
    """Outcome of one scheduled job invocation."""

    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class DeliveryStatus(str, enum.Enum):
    """Outbound email delivery states reported by the email provider."""

    SENT = "sent"
    DELIVERED = "delivered"
    DELIVERY_DELAYED = "delivery_delayed"
    BOUNCED = "bounced"
    FAILED = "failed"
    REJECTED = "rejected"
    COMPLAINED = "complained"
    SUPPRESSED = "suppressed"
    UNKNOWN = "unknown"


TERMINAL_REMOVAL_STATUSES = frozenset(
    {RemovalStatus.COMPLETED, RemovalStatus.FAILED, RemovalStatus.CANCELLED}
)

# Delivery outcomes that mean the automated email channel to a broker is dead
DEAD_CHANNEL_DELIVERY_STATUSES = frozenset(
    {
        DeliveryStatus.BOUNCED,
        DeliveryStatus.FAILED,
        DeliveryStatus.REJECTED,
        DeliveryStatus.COMPLAINED,
        DeliveryStatus.SUPPRESSED,
    }
)
