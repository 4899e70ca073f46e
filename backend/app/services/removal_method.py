"""Choose how a removal request should be carried out."""

from dataclasses import dataclass
from typing import Optional

from app.models.enums import RemovalMethod
from app.services.broker_intelligence import BrokerIntel
from brokers import get_broker


@dataclass(frozen=True)
class MethodDecision:
    method: RemovalMethod
    reason: str


def get_best_automation_method(source: str, intel: Optional[BrokerIntel] = None) -> MethodDecision:
    """Pick the removal method for a source.

    Defaults follow the directory: an automatable form, then the privacy
    email, then an API, otherwise a manual guide. A learned preference or
    the success-rate recommendation wins when the broker supports it.
    """
    broker = get_broker(source)
    if broker is None:
        return MethodDecision(RemovalMethod.MANUAL_GUIDE, f"{source} is not in the broker directory")
    if not broker.is_removable:
        return MethodDecision(RemovalMethod.MANUAL_GUIDE, f"{broker.name} is monitored only")

    form_ok = broker.can_automate_form
    email_ok = broker.supports_email and not (intel and intel.rejects_email)

    if intel is not None:
        preferred = intel.preferred_method or intel.recommended_method
        if preferred == "EMAIL" and email_ok:
            return MethodDecision(RemovalMethod.AUTO_EMAIL, f"{broker.name} responds best to email")
        if preferred == "FORM" and form_ok:
            return MethodDecision(RemovalMethod.AUTO_FORM, f"{broker.name} responds best to its form")

    if form_ok:
        return MethodDecision(RemovalMethod.AUTO_FORM, f"{broker.name} form can be automated")
    if email_ok:
        return MethodDecision(RemovalMethod.AUTO_EMAIL, f"Email opt-out to {broker.privacy_email}")
    if broker.removal_method == "API":
        return MethodDecision(RemovalMethod.API, f"{broker.name} offers an API")

    if broker.captcha_type or broker.has_cloudflare:
        reason = f"{broker.name} form is protected against automation"
    elif intel is not None and intel.rejects_email:
        reason = f"{broker.name} rejects email requests"
    else:
        reason = f"No automated channel for {broker.name}"
    return MethodDecision(RemovalMethod.MANUAL_GUIDE, reason)
