"""Outbound notifications.

DiscordNotifier posts embeds to a Discord webhook when shows, venues,
users and reports need an admin's attention.
"""

from psychic_homily.providers.notification.discord_webhook_provider import DiscordNotifier

__all__ = ["DiscordNotifier"]
