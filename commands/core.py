"""
AI Relay - Core Commands
Essential bot management commands: status, clearcache
"""

import discord

from prometheus_metrics import metrics_manager
import logger as log


async def is_owner(interaction: discord.Interaction) -> bool:
    """Check if the user is the application owner."""
    app_info = await interaction.client.application_info()
    if app_info.team:
        # If the bot is owned by a team, check if user is a team member
        return interaction.user.id in [m.id for m in app_info.team.members]
    return interaction.user.id == app_info.owner.id


def setup_core_commands(bot_instance) -> None:
    """Register core bot management commands."""
    tree = bot_instance.tree

    @tree.command(name="status", description="Check bot and AI service health")
    async def cmd_status(interaction: discord.Interaction) -> None:
        service = bot_instance.service
        health = service.recovery.perform_health_check()
        pool = service.pool.get_stats()
        latency_ms = bot_instance.client.latency * 1000

        overall = "✅ healthy" if health["overall"] == "healthy" else "⚠️ degraded"
        lines = [
            f"**Bot:** {bot_instance.name}",
            f"**Latency:** {latency_ms:.0f}ms",
            f"**AI service:** {overall}",
            f"**Pool:** {pool['active']}/{pool['max']} active, {pool['queued']} queued",
        ]
        for service_name, state in health["services"].items():
            lines.append(f"• {service_name}: {state}")

        await interaction.response.send_message("\n".join(lines), ephemeral=True)
        metrics_manager.record_command("status", True)

    @tree.command(name="clearcache", description="Clear the AI response cache (owner only)")
    async def cmd_clearcache(interaction: discord.Interaction) -> None:
        if not await is_owner(interaction):
            await interaction.response.send_message(
                "❌ Only the bot owner can use this command", ephemeral=True
            )
            return

        size = len(bot_instance.service.cache)
        bot_instance.service.cache.clear()
        metrics_manager.update_cache_size(0)
        log.ok(f"Response cache cleared ({size} entries)", bot_instance.name)
        await interaction.response.send_message(f"✅ Cleared {size} cached responses", ephemeral=True)
        metrics_manager.record_command("clearcache", True)
