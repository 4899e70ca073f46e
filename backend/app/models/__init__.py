"""Database models."""

from app.models.user import User
from app.models.exposure import Exposure
from app.models.request import RemovalRequest
from app.models.whitelist import Whitelist
from app.models.job_lock import JobLock
from app.models.cron_log import CronLog
from app.models.broker_intelligence import BrokerIntelligence
from app.models.email import OutboundEmail, EmailSuppression

__all__ = [
    "User",
    "Exposure",
    "RemovalRequest",
    "Whitelist",
    "JobLock",
    "CronLog",
    "BrokerIntelligence",
    "OutboundEmail",
    "EmailSuppression",
]
