"""
Discord webhook announcements for completed shows and title changes.

Delivery is fail-soft: the engine never depends on an announcement going
out, so every send reports success as a bool and logs failures instead of
raising.
"""

import asyncio
import logging
from typing import Optional

import aiohttp
import discord

from ringside.config import Config
from ringside.data_models.records import ShowCompletedEvent
from ringside.utils.embeds import (
    build_championship_embed, build_show_results_embed, build_show_results_message
)

logger = logging.getLogger(__name__)


class ShowNotifier:
    """Posts embeds to the configured Discord webhook"""

    def __init__(self, webhook_url: Optional[str] = None, username: Optional[str] = None,
                 max_retries: int = 3):
        self.webhook_url = webhook_url if webhook_url is not None else Config.DISCORD_WEBHOOK_URL
        self.username = username or Config.WEBHOOK_USERNAME
        self.max_retries = max_retries

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def _send_with_retry(self, webhook: discord.Webhook, content: str, embed: discord.Embed):
        for attempt in range(self.max_retries):
            try:
                return await webhook.send(content=content, embed=embed, username=self.username)
            except (discord.HTTPException, aiohttp.ClientError) as e:
                if attempt == self.max_retries - 1:
                    raise
                logger.warning(f"Webhook retry attempt {attempt + 1}: {e}")
                await asyncio.sleep(0.1 * (2 ** attempt))  # Exponential backoff

    async def send(self, content: str, embed: discord.Embed) -> bool:
        """
        Send one message with an embed.

        Returns:
            True if delivered, False if disabled or delivery failed
        """
        if not self.enabled:
            logger.debug("Discord webhook URL not configured, skipping notification")
            return False

        try:
            async with aiohttp.ClientSession() as http:
                webhook = discord.Webhook.from_url(self.webhook_url, session=http)
                await self._send_with_retry(webhook, content, embed)
            return True
        except (discord.HTTPException, aiohttp.ClientError, ValueError) as e:
            logger.error(f"Error sending Discord webhook: {e}")
            return False

    async def notify_show_completed(self, event: ShowCompletedEvent) -> bool:
        return await self.send(build_show_results_message(event), build_show_results_embed(event))

    async def notify_championship_update(self, championship_name: str, champion_name: str,
                                         company_name: str, prestige: float,
                                         previous_champion: Optional[str] = None,
                                         show_name: Optional[str] = None) -> bool:
        embed = build_championship_embed(
            championship_name, champion_name, company_name, prestige,
            previous_champion=previous_champion, show_name=show_name
        )
        content = f"🏆 **NEW CHAMPION:** {champion_name} is the new {championship_name} champion!"
        return await self.send(content, embed)
