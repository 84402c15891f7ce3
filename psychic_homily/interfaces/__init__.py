"""Public interface definitions for storage and notification providers.

Business logic in ``psychic_homily/services`` talks only to these abstract
base classes.  Concrete adapters are built in ``psychic_homily/main.py``
and injected into services, so tests can swap SQLite files, mocks or
fakes without touching the services.

CONCRETE PROVIDER MAP:
    Interface               →  Concrete implementation (in psychic_homily/providers/)
    ─────────────────────────────────────────────────────────────────────
    IShowProvider           →  SQLiteShowProvider
    IVenueProvider          →  SQLiteVenueProvider
    IArtistProvider         →  SQLiteArtistProvider
    IUserProvider           →  SQLiteUserProvider
    IEngagementProvider     →  SQLiteEngagementProvider
    IReportProvider         →  SQLiteReportProvider
    IAuditLogProvider       →  SQLiteAuditLogProvider
    IStatsProvider          →  SQLiteStatsProvider
    ICacheProvider          →  MemoryCacheProvider
    INotificationProvider   →  DiscordNotifier
"""

from psychic_homily.interfaces.artist_provider import IArtistProvider
from psychic_homily.interfaces.cache_provider import ICacheProvider
from psychic_homily.interfaces.engagement_provider import IEngagementProvider
from psychic_homily.interfaces.notification_provider import INotificationProvider
from psychic_homily.interfaces.report_provider import (
    IAuditLogProvider,
    IReportProvider,
    IStatsProvider,
)
from psychic_homily.interfaces.show_provider import IShowProvider
from psychic_homily.interfaces.user_provider import IUserProvider
from psychic_homily.interfaces.venue_provider import IVenueProvider

__all__ = [
    "IArtistProvider",
    "IAuditLogProvider",
    "ICacheProvider",
    "IEngagementProvider",
    "INotificationProvider",
    "IReportProvider",
    "IShowProvider",
    "IStatsProvider",
    "IUserProvider",
    "IVenueProvider",
]
