"""Change report delivery.

Renders a ChangeSet as a short HTML email and sends it through the SendGrid
v3 mail API. Delivery is best-effort: the monitor cycle logs a NotifyError
and moves on, the snapshot is already saved by then.
"""

import html
import httpx
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from src import config
from src.api.schemas import ChangeSet, SourceConfig, utcnow
from src.errors import NotifyError
from src.pipeline.change_detector import build_change_summary

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
MAX_ITEMS_PER_SECTION = 5


def should_notify(policy: str, changes: ChangeSet) -> bool:
    """``always`` notifies every cycle; ``on-change`` (or ``on-change-only``) only for non-empty sets."""
    if policy == "always":
        return True
    return not changes.is_empty()


def _section(heading: str, items: list, render: Callable) -> str:
    if not items:
        return ""
    lines = [f"<h3>{heading} ({len(items)})</h3>", "<ul>"]
    for item in items[:MAX_ITEMS_PER_SECTION]:
        lines.append(f"<li>{render(item)}</li>")
    if len(items) > MAX_ITEMS_PER_SECTION:
        lines.append(f"<li>... and {len(items) - MAX_ITEMS_PER_SECTION} more</li>")
    lines.append("</ul>")
    return "".join(lines)


def render_report(source_name: str, changes: ChangeSet, generated_at: Optional[datetime] = None) -> str:
    """Render the HTML body of a change report."""
    generated_at = generated_at or utcnow()
    esc = html.escape

    parts = [
        f"<h2>{esc(source_name)} - Inventory Update</h2>",
        f"<p><strong>Update Time:</strong> {generated_at.strftime('%Y-%m-%d %H:%M UTC')}</p>",
    ]
    if changes.is_empty():
        parts.append("<p>No inventory changes since the last check.</p>")

    parts.append(_section("Added", changes.added, lambda l: f"{esc(l.title)} - {esc(l.price)}"))
    parts.append(_section("Removed", changes.removed, lambda l: esc(l.title)))
    parts.append(_section("Sold", changes.sold, lambda c: esc(c.listing.title)))
    parts.append(_section("Pending", changes.pending, lambda c: esc(c.listing.title)))
    parts.append(_section(
        "Price Changes", changes.price_changed,
        lambda c: f"{esc(c.listing.title)}: {esc(c.old_price)} &rarr; {esc(c.new_price)}",
    ))
    parts.append("<hr><p><small>Automated notification from the dealer inventory monitor</small></p>")
    return "".join(parts)


class NotificationSink(ABC):
    """Delivers a change report for one source."""

    @abstractmethod
    async def notify(self, source: SourceConfig, changes: ChangeSet) -> None:
        ...


class LogNotifier(NotificationSink):
    """Writes the change summary to the log. Used when email is not configured."""

    async def notify(self, source: SourceConfig, changes: ChangeSet) -> None:
        logger.info("Changes for %s: %s", source.name, build_change_summary(changes))


class SendGridNotifier(NotificationSink):
    """Emails change reports via SendGrid."""

    def __init__(
        self,
        api_key: Optional[str],
        from_email: Optional[str],
        to_emails: List[str],
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.to_emails = to_emails
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.from_email and self.to_emails)

    def build_payload(self, source: SourceConfig, changes: ChangeSet) -> dict:
        return {
            "personalizations": [{
                "to": [{"email": email} for email in self.to_emails],
                "subject": f"Inventory Monitor - {source.name} Update",
            }],
            "from": {"email": self.from_email},
            "content": [{"type": "text/html", "value": render_report(source.name, changes)}],
        }

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            SENDGRID_URL,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    async def notify(self, source: SourceConfig, changes: ChangeSet) -> None:
        if not self.configured:
            logger.warning("SendGrid credentials not configured, skipping email for %s", source.name)
            return

        payload = self.build_payload(source, changes)
        try:
            if self._client is not None:
                response = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await self._post(client, payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotifyError(f"Email notification failed for {source.name}: {e}") from e

        logger.info("Email notification sent for %s", source.name)


def create_notifier() -> NotificationSink:
    """SendGrid when credentials are set, otherwise log-only."""
    notifier = SendGridNotifier(
        config.SENDGRID_API_KEY, config.SENDGRID_FROM_EMAIL, config.SENDGRID_TO_EMAILS,
    )
    if notifier.configured:
        return notifier
    logger.info("SendGrid not configured, change reports will be logged only")
    return LogNotifier()
