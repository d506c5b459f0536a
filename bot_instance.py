"""
AI Relay - Bot Instance
Encapsulates the Discord client, its command tree and the AI service it fronts.
"""

import discord
from discord import app_commands

from commands import setup_all_commands
from config import GUILD_ID, PERFORMANCE
from discord_utils import build_error_embed
from errors import is_transient
from prometheus_metrics import metrics_manager
from retry import RetryPolicy
from stats import stats_manager
import logger as log


class BotInstance:
    """Encapsulates a single Discord bot with its own client and command tree."""

    def __init__(self, name: str, token: str, service, guild_id=GUILD_ID):
        self.name = name
        self.token = token
        self.service = service
        self.guild_id = guild_id
        self.retry_policy = RetryPolicy.from_config(PERFORMANCE["retry"], retry_condition=is_transient)

        # Slash commands only; no message content needed
        intents = discord.Intents.default()

        # Create client and tree
        self.client = discord.Client(intents=intents)
        self.tree = app_commands.CommandTree(self.client)

        # Set up events and commands
        self._setup_events()
        setup_all_commands(self)

    def _setup_events(self):
        """Register event handlers."""

        @self.client.event
        async def on_ready():
            # Background sweeps for expired cache entries and idle limiter keys, plus memory samples
            self.service.cache.start_cleanup()
            self.service.rate_limiter.start_cleanup()
            self.service.stats.start_memory_sampling()

            # Sync commands
            try:
                if self.guild_id:
                    guild = discord.Object(id=int(self.guild_id))
                    self.tree.copy_global_to(guild=guild)
                    synced = await self.tree.sync(guild=guild)
                else:
                    synced = await self.tree.sync()
                log.ok(f"Synced {len(synced)} commands", self.name)
            except Exception as e:
                log.error(f"Command sync failed: {e}", self.name)

            log.online(f"{self.client.user} is online!", self.name)

        @self.tree.error
        async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
            original = getattr(error, "original", error)
            command = interaction.command.name if interaction.command else "unknown"
            log.error(f"/{command} failed: {original}", self.name)
            stats_manager.record_error(command)
            metrics_manager.record_command(command, False)

            embed = build_error_embed(original)
            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)

    async def start(self):
        """Start the bot."""
        await self.client.start(self.token)

    async def close(self):
        """Close the bot and stop background sweeps."""
        self.service.cache.stop_cleanup()
        self.service.rate_limiter.stop_cleanup()
        self.service.stats.stop_memory_sampling()
        await self.client.close()
