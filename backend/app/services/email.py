"""Email service using Resend.

Outbound broker emails are recorded in outbound_emails so delivery
statuses reported by Resend can be traced back to removal requests.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Optional, Protocol

import httpx
import resend
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.email import OutboundEmail
from app.models.enums import DeliveryStatus

logger = logging.getLogger(__name__)

# Initialize Resend
resend.api_key = settings.resend_api_key

DELIVERY_STATUS_PAGE_SIZE = 100


@dataclass
class DeliveryStatusRecord:
    """Latest delivery state of one sent email."""
    message_id: str
    recipient: str
    status: DeliveryStatus
    created_at: Optional[datetime] = None


class EmailProvider(Protocol):
    async def send(self, to: str | list[str], subject: str, html: str, reply_to: Optional[str] = None) -> Optional[str]:
        ...

    async def list_delivery_statuses(self, since: datetime) -> list[DeliveryStatusRecord]:
        ...


def parse_delivery_status(value: Optional[str]) -> DeliveryStatus:
    try:
        return DeliveryStatus(value)
    except ValueError:
        return DeliveryStatus.UNKNOWN


class ResendEmailProvider:
    """Sends through the Resend SDK and reads delivery events from its REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.api_url = (api_url or settings.resend_api_url).rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def send(self, to: str | list[str], subject: str, html: str, reply_to: Optional[str] = None) -> Optional[str]:
        """Send an email; returns the provider message id."""
        if not self.api_key:
            logger.info("[Email] Would send to %s: %s", to, subject)
            return None

        params = {
            "from": settings.from_email,
            "to": to,
            "subject": subject,
            "html": html,
        }
        if reply_to:
            params["reply_to"] = reply_to
        response = await asyncio.to_thread(resend.Emails.send, params)
        return response.get("id") if isinstance(response, dict) else getattr(response, "id", None)

    async def list_delivery_statuses(self, since: datetime) -> list[DeliveryStatusRecord]:
        """Delivery status of emails sent since ``since``.

        Resend lists emails newest first, so paging stops at the first page
        that reaches back past ``since``.
        """
        if not self.api_key:
            return []

        records = []
        params = {"limit": DELIVERY_STATUS_PAGE_SIZE}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                response = await client.get(
                    f"{self.api_url}/emails",
                    params=params,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                payload = response.json()
                items = payload.get("data", [])

                reached_since = False
                for item in items:
                    created_at = _parse_timestamp(item.get("created_at"))
                    if created_at is not None and created_at < since:
                        reached_since = True
                        continue
                    recipients = item.get("to") or []
                    if isinstance(recipients, str):
                        recipients = [recipients]
                    for recipient in recipients:
                        records.append(DeliveryStatusRecord(
                            message_id=item["id"],
                            recipient=recipient.lower(),
                            status=parse_delivery_status(item.get("last_event")),
                            created_at=created_at,
                        ))

                if not items or reached_since or not payload.get("has_more"):
                    break
                params = {"limit": DELIVERY_STATUS_PAGE_SIZE, "after": items[-1]["id"]}
        return records


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00").replace(" ", "T", 1))
    except ValueError:
        return None
    return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed


def get_email_provider() -> EmailProvider:
    return ResendEmailProvider()


async def send_removal_email(
    db: AsyncSession,
    provider: EmailProvider,
    removal_request_id: uuid.UUID,
    to: str,
    subject: str,
    html: str,
) -> Optional[OutboundEmail]:
    """Send a broker email and record it against the removal request.

    Replies go to the shared reply inbox for reconciliation.
    """
    message_id = await provider.send(to, subject, html, reply_to=settings.reply_to_email)
    if not message_id:
        return None

    outbound = OutboundEmail(
        provider_message_id=message_id,
        removal_request_id=removal_request_id,
        recipient=to.lower(),
        subject=subject,
    )
    db.add(outbound)
    await db.flush()
    return outbound


def build_link_health_report_html(report: dict) -> str:
    """Operator report for the link health monitor."""
    rows = []
    for link in report["broken_links"]:
        if link["corrected_url"]:
            corrected = escape(link["corrected_url"])
            fix = f'Known correction: <a href="{corrected}">{corrected}</a>'
        elif link["suggested_url"]:
            suggested = escape(link["suggested_url"])
            fix = f'Suggested: <a href="{suggested}">{suggested}</a> (needs review)'
        else:
            fix = "No working alternative found"
        detail = escape(str(link["error"] or link["status_code"]))
        rows.append(
            f'<tr><td>{escape(link["source"])}</td><td>{escape(link["url"])}</td><td>{detail}</td><td>{fix}</td></tr>'
        )

    return f"""
    <div style="font-family: sans-serif; max-width: 800px; margin: 0 auto;">
        <h1 style="color: #0f172a;">Opt-out link health report</h1>
        <p>
            Checked: {report["checked"]} &middot; Working: {report["working"]} &middot;
            Broken: {report["broken"]} &middot; Errors: {report["errors"]} &middot;
            Timeouts: {report["timeouts"]}
        </p>
        <p>Corrected: {report["corrected"]} &middot; Suggested: {report["suggested"]}</p>
        <table style="border-collapse: collapse; width: 100%; font-size: 14px;">
            <tr><th>Broker</th><th>URL</th><th>Status</th><th>Fix</th></tr>
            {"".join(rows)}
        </table>
        <p style="color: #64748b; font-size: 14px;">
            Suggested URLs are not applied automatically. Promote them in brokers/url_corrections.py after review.
        </p>
    </div>
    """


async def send_link_health_report(provider: EmailProvider, report: dict) -> bool:
    """Email the link report to operators when links are broken."""
    if not report["broken_links"] or not settings.admin_emails:
        return False

    subject = f"[Removal Orchestrator] {len(report['broken_links'])} broken opt-out links detected"
    try:
        await provider.send(settings.admin_emails, subject, build_link_health_report_html(report))
    except Exception:
        logger.exception("Failed to send link health report")
        return False
    return True
