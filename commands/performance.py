"""
AI Relay - Performance Commands
/performance: cache, API, breaker, memory and command statistics.
"""

from typing import Optional

import discord
from discord import app_commands

from discord_utils import build_performance_embed
from prometheus_metrics import metrics_manager


VIEW_CHOICES = [
    app_commands.Choice(name="📈 General Stats", value="general"),
    app_commands.Choice(name="🚀 Cache Statistics", value="cache"),
    app_commands.Choice(name="🔄 API Performance", value="api"),
    app_commands.Choice(name="🛡️ Circuit Breakers", value="breakers"),
    app_commands.Choice(name="🧠 Memory Usage", value="memory"),
]


def setup_performance_commands(bot_instance) -> None:
    tree = bot_instance.tree

    @tree.command(name="performance", description="📊 View bot performance metrics and statistics")
    @app_commands.describe(view="Type of metrics to display")
    @app_commands.choices(view=VIEW_CHOICES)
    async def cmd_performance(
        interaction: discord.Interaction,
        view: Optional[app_commands.Choice[str]] = None
    ) -> None:
        selected = view.value if view else "general"
        embed = build_performance_embed(bot_instance.service.get_stats(), selected)
        await interaction.response.send_message(embed=embed, ephemeral=True)
        metrics_manager.record_command("performance", True)
