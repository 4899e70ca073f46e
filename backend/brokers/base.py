"""Broker catalog entry definition."""

from dataclasses import dataclass
from typing import Optional


# FORM, EMAIL, BOTH, API, or MONITOR for sources that cannot be removed from
FORM_METHODS = {"FORM", "BOTH"}
EMAIL_METHODS = {"EMAIL", "BOTH"}


@dataclass(frozen=True)
class BrokerInfo:
    """Static opt-out information for one data broker."""
    key: str
    name: str
    category: str  # people_search, background_check, marketing, b2b, breach
    opt_out_url: Optional[str]
    removal_method: str
    processing_days: int
    privacy_email: Optional[str] = None
    captcha_type: Optional[str] = None  # recaptcha_v2, hcaptcha
    has_cloudflare: bool = False
    requires_verification: bool = False
    notes: Optional[str] = None

    @property
    def is_removable(self) -> bool:
        return self.removal_method != "MONITOR"

    @property
    def can_automate_form(self) -> bool:
        """Form submission works unattended: no CAPTCHA and no bot wall."""
        return (
            self.removal_method in FORM_METHODS
            and bool(self.opt_out_url)
            and self.captcha_type is None
            and not self.has_cloudflare
        )

    @property
    def supports_email(self) -> bool:
        return self.removal_method in EMAIL_METHODS and bool(self.privacy_email)
