"""
AI Relay - AI Commands
/ai: send a prompt to the AI service in one of several response styles.
"""

import time
from typing import Optional

import discord
from discord import app_commands

from constants import USER_COMMAND_LIMIT, USER_COMMAND_WINDOW
from discord_utils import build_error_embed, build_rate_limit_embed, build_response_embed
from errors import AIServiceError
from prometheus_metrics import metrics_manager
from retry import retry_with_backoff
from stats import stats_manager
import logger as log


PROBLEM_SYSTEM_MESSAGE = (
    "You are a problem-solving expert. Help solve this step by step with clear "
    "explanations, examples, and actionable solutions. Use emojis and engaging formatting."
)

LEARN_SYSTEM_MESSAGE = (
    "You are a friendly teacher. Create an engaging learning guide for this topic. "
    "Include examples, key concepts, and next steps. Use emojis and clear formatting."
)

TYPE_CHOICES = [
    app_commands.Choice(name="💬 Chat", value="general"),
    app_commands.Choice(name="💻 Code", value="code"),
    app_commands.Choice(name="📚 Explain", value="explain"),
    app_commands.Choice(name="🔍 Review", value="review"),
    app_commands.Choice(name="🎯 Solve", value="problem"),
    app_commands.Choice(name="📖 Learn", value="learn"),
]

LANGUAGE_CHOICES = [
    app_commands.Choice(name=name, value=value) for name, value in (
        ("🟨 JavaScript", "javascript"),
        ("🐍 Python", "python"),
        ("☕ Java", "java"),
        ("⚡ C++", "cpp"),
        ("💙 TypeScript", "typescript"),
        ("🐹 Go", "go"),
        ("🦀 Rust", "rust"),
        ("🐘 PHP", "php"),
        ("🔷 C#", "csharp"),
        ("💎 Ruby", "ruby"),
    )
]


async def run_ai_request(service, response_type: str, prompt: str,
                         language: str = "javascript", caller_id=None,
                         enforce_rate_limit: bool = True) -> str:
    """Route one request to the service method matching ``response_type``."""
    options = {"caller_id": caller_id, "enforce_rate_limit": enforce_rate_limit}
    if response_type == "code":
        return await service.generate_code_response(prompt, language, **options)
    if response_type == "explain":
        return await service.generate_explanation(prompt, language, **options)
    if response_type == "review":
        return await service.generate_review(prompt, language, **options)
    if response_type == "problem":
        return await service.generate_response(prompt, PROBLEM_SYSTEM_MESSAGE, **options)
    if response_type == "learn":
        return await service.generate_response(prompt, LEARN_SYSTEM_MESSAGE, **options)
    return await service.generate_response(prompt, **options)


def setup_ai_commands(bot_instance) -> None:
    """Register the /ai command."""
    tree = bot_instance.tree

    @tree.command(name="ai", description="🤖 Get AI-powered responses using GitHub AI models")
    @app_commands.rename(response_type="type")
    @app_commands.describe(
        prompt="Your prompt for the AI (max 2000 chars)",
        response_type="Response type",
        language="Programming language (for code, explain and review)"
    )
    @app_commands.choices(response_type=TYPE_CHOICES, language=LANGUAGE_CHOICES)
    async def cmd_ai(
        interaction: discord.Interaction,
        prompt: str,
        response_type: Optional[app_commands.Choice[str]] = None,
        language: Optional[app_commands.Choice[str]] = None
    ) -> None:
        service = bot_instance.service
        user_id = interaction.user.id
        style = response_type.value if response_type else "general"
        lang = language.value if language else "javascript"

        if not service.rate_limiter.check_limit(f"ai_command:{user_id}", USER_COMMAND_LIMIT, USER_COMMAND_WINDOW):
            metrics_manager.record_rate_limit_hit("command")
            await interaction.response.send_message(embed=build_rate_limit_embed(), ephemeral=True)
            return

        await interaction.response.defer(thinking=True)
        started = time.monotonic()

        # Only the first attempt spends the caller's ai_request token
        try:
            response = await retry_with_backoff(
                lambda attempt: run_ai_request(
                    service, style, prompt, lang, caller_id=user_id, enforce_rate_limit=attempt == 1
                ),
                bot_instance.retry_policy,
            )
        except AIServiceError as error:
            log.warn(f"/ai failed for {user_id} [{error.category}]", bot_instance.name)
            stats_manager.record_error("ai")
            metrics_manager.record_command("ai", False)
            await interaction.followup.send(embed=build_error_embed(error))
            return

        elapsed_ms = (time.monotonic() - started) * 1000
        embed, overflow = build_response_embed(response, style, elapsed_ms)
        await interaction.followup.send(embed=embed)
        for chunk in overflow:
            await interaction.followup.send(chunk)

        stats_manager.record_command("ai", elapsed_ms)
        metrics_manager.record_command("ai", True)
