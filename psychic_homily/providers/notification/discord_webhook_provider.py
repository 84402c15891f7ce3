"""Discord webhook notifications for moderation events.

# ─── ARCHITECTURE ────────────────────────────────────────────────────
#
# DiscordNotifier posts one embed per event to a Discord channel webhook
# so admins hear about new users, new shows, status changes, reports and
# venue edits without polling the admin queues.
#
#   - httpx for async HTTP requests (an injected shared client, or a
#     short-lived one per call)
#   - log + return on failure: a webhook outage must never fail the
#     request that triggered the notification
#   - a no-op unless both enabled and given a webhook URL
#
# Payload shape (Discord "execute webhook"):
#   {"embeds": [{"title", "description", "color", "fields": [...],
#                "timestamp"}]}
#
# Layer: Providers (implements INotificationProvider interface)
# Depends on: httpx, structlog
# ─────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.models.artist import Artist
from psychic_homily.models.report import ArtistReport, ShowReport
from psychic_homily.models.show import SetType, Show
from psychic_homily.models.user import User
from psychic_homily.models.venue import PendingVenueEdit, Venue
from psychic_homily.utils.dates import utc_now

logger = structlog.get_logger(logger_name=__name__)

# Embed colours (decimal RGB as Discord expects).
COLOR_GREEN = 0x00FF00   # new user, approved
COLOR_BLUE = 0x0066FF    # new show / venue
COLOR_ORANGE = 0xFFA500  # status change, report, pending edit
COLOR_RED = 0xFF0000     # rejected

_TIMEOUT_SECONDS = 10.0


# ── Formatting helpers ────────────────────────────────────────────────

def mask_email(email: str | None) -> str:
    """Mask an email for a shared channel: ``jo***@example.com``."""
    if not email:
        return "N/A"
    parts = email.split("@")
    if len(parts) != 2 or not parts[0]:
        return "N/A"
    local, domain = parts
    visible = local[:1] if len(local) <= 2 else local[:2]
    return f"{visible}***@{domain}"


def _user_name(user: User) -> str:
    name = " ".join(p for p in (user.first_name, user.last_name) if p)
    return name or "Not provided"


def _venue_list(show: Show) -> str:
    return ", ".join(v.name for v in show.venues) or "N/A"


def _artist_list(show: Show) -> str:
    names = [
        f"{a.name} (headliner)" if a.set_type == SetType.HEADLINER else a.name
        for a in show.artists
    ]
    return ", ".join(names) or "N/A"


def _field(name: str, value: Any, inline: bool = True) -> dict[str, Any]:
    # Discord rejects empty field values.
    text = str(value) if value not in (None, "") else "N/A"
    return {"name": name, "value": text[:1024], "inline": inline}


class DiscordNotifier(INotificationProvider):
    """Sends moderation events to a Discord webhook.

    Constructor injection: the webhook URL and enabled flag come from
    Settings in the composition root; ``http_client`` lets the app share
    one connection pool (and lets tests pass a mock transport).
    """

    def __init__(
        self,
        *,
        webhook_url: str = "",
        enabled: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._enabled = enabled
        self._http_client = http_client

    def is_configured(self) -> bool:
        return self._enabled and bool(self._webhook_url)

    async def _send(self, embed: dict[str, Any]) -> bool:
        """POST one embed.  Returns True on a 2xx response; never raises."""
        if not self.is_configured():
            return False
        embed.setdefault("timestamp", utc_now().isoformat())
        payload = {"embeds": [embed]}

        try:
            if self._http_client is not None:
                resp = await self._http_client.post(
                    self._webhook_url, json=payload, timeout=_TIMEOUT_SECONDS
                )
            else:
                async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as client:
                    resp = await client.post(self._webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("discord_webhook_failed", title=embed.get("title"), error=str(exc))
            return False

        if not 200 <= resp.status_code < 300:
            logger.warning(
                "discord_webhook_non_2xx",
                title=embed.get("title"),
                status_code=resp.status_code,
                body=resp.text[:200],
            )
            return False
        logger.debug("discord_webhook_sent", title=embed.get("title"))
        return True

    # ── Users ──────────────────────────────────────────────────────────

    async def notify_new_user(self, user: User) -> None:
        await self._send({
            "title": "New User Registration",
            "color": COLOR_GREEN,
            "fields": [
                _field("User ID", user.id),
                _field("Email", mask_email(user.email)),
                _field("Name", _user_name(user)),
            ],
        })

    # ── Shows ──────────────────────────────────────────────────────────

    async def notify_new_show(self, show: Show, submitter_email: str | None) -> None:
        await self._send({
            "title": f"New Show: {show.title}",
            "description": f"Event Date: {show.event_date.strftime('%b %-d, %Y %-I:%M %p')}",
            "color": COLOR_BLUE,
            "fields": [
                _field("Show ID", show.id),
                _field("Status", show.status.value),
                _field("Submitter", mask_email(submitter_email)),
                _field("Venue(s)", _venue_list(show), inline=False),
                _field("Artist(s)", _artist_list(show), inline=False),
            ],
        })

    async def notify_show_status_change(
        self, show: Show, old_status: str, new_status: str, actor_email: str | None
    ) -> None:
        await self._send({
            "title": f"Show Status Changed: {show.title}",
            "description": f"{old_status} → {new_status}",
            "color": COLOR_ORANGE,
            "fields": [
                _field("Show ID", show.id),
                _field("Changed By", mask_email(actor_email)),
            ],
        })

    async def notify_show_approved(self, show: Show) -> None:
        await self._send({
            "title": f"Show Approved: {show.title}",
            "color": COLOR_GREEN,
            "fields": [
                _field("Show ID", show.id),
                _field("Event Date", show.event_date.strftime("%b %-d, %Y")),
                _field("Venue(s)", _venue_list(show), inline=False),
            ],
        })

    async def notify_show_rejected(self, show: Show, reason: str) -> None:
        await self._send({
            "title": f"Show Rejected: {show.title}",
            "description": f"Reason: {reason}",
            "color": COLOR_RED,
            "fields": [
                _field("Show ID", show.id),
                _field("Event Date", show.event_date.strftime("%b %-d, %Y")),
                _field("Venue(s)", _venue_list(show), inline=False),
            ],
        })

    # ── Reports and venues ─────────────────────────────────────────────

    async def notify_show_report(
        self, report: ShowReport, show: Show | None, reporter_email: str | None
    ) -> None:
        title = show.title if show is not None else f"Show #{report.show_id}"
        await self._send({
            "title": f"Show Reported: {title}",
            "description": report.details or "",
            "color": COLOR_ORANGE,
            "fields": [
                _field("Report ID", report.id),
                _field("Show ID", report.show_id),
                _field("Type", report.report_type.value),
                _field("Reporter", mask_email(reporter_email)),
            ],
        })

    async def notify_artist_report(
        self, report: ArtistReport, artist: Artist | None, reporter_email: str | None
    ) -> None:
        name = artist.name if artist is not None else f"Artist #{report.artist_id}"
        await self._send({
            "title": f"Artist Reported: {name}",
            "description": report.details or "",
            "color": COLOR_ORANGE,
            "fields": [
                _field("Report ID", report.id),
                _field("Artist ID", report.artist_id),
                _field("Type", report.report_type.value),
                _field("Reporter", mask_email(reporter_email)),
            ],
        })

    async def notify_new_venue(self, venue: Venue, submitter_email: str | None) -> None:
        await self._send({
            "title": f"New Venue: {venue.name}",
            "description": f"{venue.city}, {venue.state}",
            "color": COLOR_BLUE,
            "fields": [
                _field("Venue ID", venue.id),
                _field("Verified", "yes" if venue.verified else "no"),
                _field("Submitter", mask_email(submitter_email)),
                _field("Address", venue.address, inline=False),
            ],
        })

    async def notify_pending_venue_edit(
        self, edit: PendingVenueEdit, venue: Venue, submitter_email: str | None
    ) -> None:
        changed = ", ".join(sorted(edit.changes.non_null())) or "N/A"
        await self._send({
            "title": f"Venue Edit Pending: {venue.name}",
            "color": COLOR_ORANGE,
            "fields": [
                _field("Edit ID", edit.id),
                _field("Venue ID", venue.id),
                _field("Submitter", mask_email(submitter_email)),
                _field("Changed Fields", changed, inline=False),
            ],
        })
