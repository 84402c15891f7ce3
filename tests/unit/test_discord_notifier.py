"""Unit tests for DiscordNotifier.

A mock httpx transport captures the webhook payloads so no network call
is made.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from psychic_homily.models.artist import Artist
from psychic_homily.models.report import ArtistReport, ArtistReportType, ReportType, ShowReport
from psychic_homily.models.show import SetType, Show, ShowArtist, ShowStatus, ShowVenue
from psychic_homily.models.user import User
from psychic_homily.providers.notification.discord_webhook_provider import (
    COLOR_GREEN,
    COLOR_RED,
    DiscordNotifier,
    mask_email,
)

WEBHOOK = "https://discord.test/api/webhooks/1/abc"


def _show() -> Show:
    return Show(
        id=7,
        title="The Black Keys",
        event_date=datetime(2026, 5, 1, 3, 0, tzinfo=timezone.utc),
        status=ShowStatus.PENDING,
        venues=[ShowVenue(id=1, name="Valley Bar", city="Phoenix", state="AZ")],
        artists=[
            ShowArtist(id=1, name="The Black Keys", position=0, set_type=SetType.HEADLINER),
            ShowArtist(id=2, name="Opener", position=1),
        ],
    )


@pytest.fixture
def captured() -> list[dict]:
    return []


def _notifier(captured: list[dict], status_code: int = 204, **kwargs) -> DiscordNotifier:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(status_code)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DiscordNotifier(
        webhook_url=kwargs.get("webhook_url", WEBHOOK),
        enabled=kwargs.get("enabled", True),
        http_client=client,
    )


# ─── mask_email ───────────────────────────────────────────────────

class TestMaskEmail:
    def test_masks_local_part(self) -> None:
        assert mask_email("john@example.com") == "jo***@example.com"

    def test_short_local_part(self) -> None:
        assert mask_email("ab@example.com") == "a***@example.com"

    @pytest.mark.parametrize("value", [None, "", "not-an-email", "@example.com"])
    def test_unusable_values(self, value) -> None:
        assert mask_email(value) == "N/A"


# ─── Sending ──────────────────────────────────────────────────────

class TestDiscordNotifier:
    async def test_disabled_sends_nothing(self, captured) -> None:
        notifier = _notifier(captured, enabled=False)
        assert not notifier.is_configured()
        await notifier.notify_show_approved(_show())
        assert captured == []

    async def test_missing_url_sends_nothing(self, captured) -> None:
        notifier = _notifier(captured, webhook_url="")
        await notifier.notify_show_approved(_show())
        assert captured == []

    async def test_new_show_embed(self, captured) -> None:
        await _notifier(captured).notify_new_show(_show(), "submitter@example.com")
        embed = captured[0]["embeds"][0]
        assert embed["title"] == "New Show: The Black Keys"
        fields = {f["name"]: f["value"] for f in embed["fields"]}
        assert fields["Submitter"] == "su***@example.com"
        assert fields["Artist(s)"] == "The Black Keys (headliner), Opener"
        assert fields["Venue(s)"] == "Valley Bar"
        assert "timestamp" in embed

    async def test_new_user_embed_masks_email(self, captured) -> None:
        user = User(id=3, email="newfan@example.com", first_name="New", last_name="Fan")
        await _notifier(captured).notify_new_user(user)
        embed = captured[0]["embeds"][0]
        assert embed["color"] == COLOR_GREEN
        assert "newfan@example.com" not in json.dumps(embed)

    async def test_rejected_embed_carries_reason(self, captured) -> None:
        await _notifier(captured).notify_show_rejected(_show(), "Not a real show")
        embed = captured[0]["embeds"][0]
        assert embed["color"] == COLOR_RED
        assert embed["description"] == "Reason: Not a real show"

    async def test_report_embed(self, captured) -> None:
        report = ShowReport(id=4, show_id=7, reported_by=3, report_type=ReportType.SOLD_OUT)
        await _notifier(captured).notify_show_report(report, None, "r@example.com")
        embed = captured[0]["embeds"][0]
        assert embed["title"] == "Show Reported: Show #7"
        # Empty values are replaced so Discord accepts the embed.
        assert all(f["value"] for f in embed["fields"])

    async def test_artist_report_embed(self, captured) -> None:
        report = ArtistReport(
            id=5,
            artist_id=9,
            reported_by=3,
            report_type=ArtistReportType.REMOVAL_REQUEST,
            details="This is my band, please take it down",
        )
        artist = Artist(id=9, name="Band of Skulls", slug="band-of-skulls")
        await _notifier(captured).notify_artist_report(report, artist, "r@example.com")
        embed = captured[0]["embeds"][0]
        assert embed["title"] == "Artist Reported: Band of Skulls"
        assert embed["description"] == "This is my band, please take it down"
        assert {"name": "Type", "value": "removal_request", "inline": True} in embed["fields"]

    async def test_non_2xx_is_swallowed(self, captured) -> None:
        notifier = _notifier(captured, status_code=500)
        await notifier.notify_show_approved(_show())
        assert len(captured) == 1

    async def test_transport_error_is_swallowed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        notifier = DiscordNotifier(webhook_url=WEBHOOK, enabled=True, http_client=client)
        await notifier.notify_show_approved(_show())
