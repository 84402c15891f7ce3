"""Abstract base class for outbound moderation notifications.

Concrete implementation: DiscordNotifier
(psychic_homily/providers/notification/discord_webhook_provider.py).

Every method is fire-and-forget from the caller's point of view:
implementations must log delivery failures and never raise, so a webhook
outage can never fail a show submission or an approval.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from psychic_homily.models.artist import Artist
from psychic_homily.models.report import ArtistReport, ShowReport
from psychic_homily.models.show import Show
from psychic_homily.models.user import User
from psychic_homily.models.venue import PendingVenueEdit, Venue


class INotificationProvider(ABC):
    """Contract for admin-facing event notifications."""

    @abstractmethod
    def is_configured(self) -> bool:
        """True when notifications will actually be delivered."""

    @abstractmethod
    async def notify_new_user(self, user: User) -> None: ...

    @abstractmethod
    async def notify_new_show(self, show: Show, submitter_email: str | None) -> None: ...

    @abstractmethod
    async def notify_show_status_change(
        self, show: Show, old_status: str, new_status: str, actor_email: str | None
    ) -> None: ...

    @abstractmethod
    async def notify_show_approved(self, show: Show) -> None: ...

    @abstractmethod
    async def notify_show_rejected(self, show: Show, reason: str) -> None: ...

    @abstractmethod
    async def notify_show_report(
        self, report: ShowReport, show: Show | None, reporter_email: str | None
    ) -> None: ...

    @abstractmethod
    async def notify_artist_report(
        self, report: ArtistReport, artist: Artist | None, reporter_email: str | None
    ) -> None: ...

    @abstractmethod
    async def notify_new_venue(self, venue: Venue, submitter_email: str | None) -> None: ...

    @abstractmethod
    async def notify_pending_venue_edit(
        self, edit: PendingVenueEdit, venue: Venue, submitter_email: str | None
    ) -> None: ...
