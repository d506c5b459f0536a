"""
AI Relay - Main Entry Point
Wires the AI service, metrics server and Discord bot together and runs them.
"""

import asyncio
import logging
import sys

# Suppress verbose logging from all libraries
logging.getLogger('discord').setLevel(logging.WARNING)
logging.getLogger('discord.http').setLevel(logging.WARNING)
logging.getLogger('discord.gateway').setLevel(logging.WARNING)
logging.getLogger('httpx').setLevel(logging.WARNING)
logging.getLogger('httpcore').setLevel(logging.WARNING)
logging.getLogger('openai').setLevel(logging.WARNING)
logging.getLogger('openai._base_client').setLevel(logging.WARNING)

from ai_service import AIService
from bot_instance import BotInstance
from config import DISCORD_TOKEN, ENABLE_METRICS, PERFORMANCE
from prometheus_metrics import metrics_manager
import logger as log


async def run_bot():
    """Build the service stack and run the bot until it disconnects."""
    if not DISCORD_TOKEN:
        log.error("DISCORD_TOKEN not set!")
        return

    service = AIService.from_config(PERFORMANCE)
    bot = BotInstance(name="AI Relay", token=DISCORD_TOKEN, service=service)

    if ENABLE_METRICS:
        metrics_manager.start_metrics_server()

    log.startup("Starting bot...")
    log.divider()

    try:
        await bot.start()
    finally:
        log.info("Shutting down...")
        await bot.close()
        await service.close()


# --- Entry Point ---

if __name__ == "__main__":
    # Run startup validation first
    from startup import validate_startup

    passed, _ = validate_startup(interactive=True)
    if not passed:
        log.error("Startup validation failed. Please fix the issues above.")
        sys.exit(1)

    log.divider()
    try:
        asyncio.run(run_bot())
    except KeyboardInterrupt:
        pass
