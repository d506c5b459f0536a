"""
AI Relay - Discord Utilities
Message splitting and embed builders shared by the slash commands.
"""

from typing import List

import discord

from constants import MAX_EMBED_DESCRIPTION, MAX_MESSAGE_LENGTH, USER_COMMAND_LIMIT
from errors import classify_error


# Embed colors
COLOR_DEFAULT = 0x0099FF
COLOR_ERROR = 0xFF6B6B
COLOR_OK = 0x00D4AA

RESPONSE_STYLES = {
    "general": ("🤖", "AI Response", 0x0099FF),
    "code": ("💻", "Code Generation Result", 0x00FF00),
    "explain": ("📚", "Code Explanation", 0xFFFF00),
    "review": ("🔍", "Code Review Report", 0xFF6600),
    "problem": ("🎯", "Problem Solution", 0xFF0066),
    "learn": ("📖", "Learning Guide", 0x9966CC),
}


def split_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split text into chunks no longer than ``limit``.

    Prefers paragraph breaks, then line breaks, then spaces; only cuts
    mid-word when a single word is longer than the limit.
    """
    if limit < 1:
        raise ValueError("limit must be positive")

    text = text.strip()
    chunks = []
    while len(text) > limit:
        window = text[:limit]
        cut = -1
        for sep in ("\n\n", "\n", " "):
            cut = window.rfind(sep)
            if cut > 0:
                break
        if cut <= 0:
            cut = limit
        chunks.append(text[:cut].rstrip())
        text = text[cut:].lstrip()
    if text:
        chunks.append(text)
    return chunks


def build_response_embed(response: str, response_type: str = "general",
                         elapsed_ms: float = None) -> tuple:
    """Build the main reply embed.

    Returns:
        tuple: (embed, overflow_chunks) - text that didn't fit the embed
    """
    icon, title, color = RESPONSE_STYLES.get(response_type, RESPONSE_STYLES["general"])
    chunks = split_message(response, MAX_EMBED_DESCRIPTION)
    first = chunks[0] if chunks else "..."
    overflow = []
    for chunk in chunks[1:]:
        overflow.extend(split_message(chunk, MAX_MESSAGE_LENGTH))

    embed = discord.Embed(title=f"{icon} {title}", description=first, color=color)
    if elapsed_ms is not None:
        embed.set_footer(text=f"⚡ Generated in {elapsed_ms / 1000:.1f}s")
    return embed, overflow


def build_error_embed(error: BaseException) -> discord.Embed:
    """Apologetic embed for a failed request. Internal detail stays in the logs."""
    classified = classify_error(error)
    return discord.Embed(
        title="❌ Sorry, something went wrong",
        description=classified.user_message,
        color=COLOR_ERROR,
    )


def build_rate_limit_embed(limit: int = USER_COMMAND_LIMIT) -> discord.Embed:
    embed = discord.Embed(
        title="⏰ Rate Limited",
        description="You're using AI commands too frequently! Please wait a minute before trying again.",
        color=COLOR_ERROR,
    )
    embed.set_footer(text=f"Rate limit: {limit} requests per minute")
    return embed


def build_performance_embed(stats: dict, view: str = "general") -> discord.Embed:
    """Render an ``AIService.get_stats()`` snapshot."""
    perf = stats["performance"]

    if view == "cache":
        cache = stats["cache"]
        embed = discord.Embed(title="🚀 Cache Statistics", color=0x3498DB)
        embed.add_field(name="📦 Cache Size", value=f"{cache['size']}/{cache['max_size']}", inline=True)
        embed.add_field(name="🎯 Hit Rate", value=perf["api"]["cache_hit_rate"], inline=True)
        embed.add_field(name="🗑️ Evictions", value=str(cache["evictions"]), inline=True)
        embed.add_field(name="💡 Saved Calls", value=f"{perf['api']['cache_hits']} API calls", inline=False)
        return embed

    if view == "api":
        pool = stats["pool"]
        limiter = stats["rate_limiter"]
        embed = discord.Embed(title="🔄 API Performance", color=0xE67E22)
        embed.add_field(name="📡 API Calls", value=str(perf["api"]["total_calls"]), inline=True)
        embed.add_field(name="🔗 Pool", value=f"{pool['active']}/{pool['max']} active, {pool['queued']} queued", inline=True)
        embed.add_field(name="⏱️ Limiter", value=f"{limiter['active_keys']} keys, {limiter['denied']} denied", inline=True)
        return embed

    if view == "breakers":
        embed = discord.Embed(title="🛡️ Circuit Breakers", color=0x95A5A6)
        for name, breaker in stats["circuit_breakers"].items():
            icon = "🟢" if breaker["state"] == "CLOSED" else "🟡" if breaker["state"] == "HALF_OPEN" else "🔴"
            embed.add_field(
                name=f"{icon} {name}",
                value=(f"{breaker['state']} • {breaker['failures']}/{breaker['failure_threshold']} failures • "
                       f"{breaker['successful_requests']}/{breaker['total_requests']} ok"),
                inline=False,
            )
        if not stats["circuit_breakers"]:
            embed.description = "No circuit breakers registered"
        return embed

    if view == "memory":
        memory = perf["memory"]
        embed = discord.Embed(title="🧠 Memory Usage", color=0x9B59B6)
        if not memory["samples"]:
            embed.description = "No memory samples yet"
            return embed
        embed.add_field(name="📊 Current RSS", value=f"{memory['current_mb']:.1f} MB", inline=True)
        embed.add_field(name="⛰️ Peak RSS", value=f"{memory['peak_mb']:.1f} MB", inline=True)
        embed.add_field(name="📉 Average RSS", value=f"{memory['average_mb']:.1f} MB", inline=True)
        embed.add_field(name="🗺️ Virtual", value=f"{memory['vms_mb']:.1f} MB", inline=True)
        embed.add_field(name="🔢 Samples", value=str(memory["samples"]), inline=True)
        return embed

    embed = discord.Embed(title="📈 General Stats", color=COLOR_OK)
    embed.add_field(name="⏰ Uptime", value=perf["uptime"], inline=True)
    embed.add_field(name="📡 API Calls", value=str(perf["api"]["total_calls"]), inline=True)
    embed.add_field(name="❌ Errors", value=str(perf["errors"]), inline=True)
    if perf["memory"]["samples"]:
        embed.add_field(name="🧠 Memory", value=f"{perf['memory']['current_mb']:.1f} MB", inline=True)
    top =sorted(perf["commands"].items(), key=lambda x: x[1]["count"], reverse=True)[:5]
    if top:
        lines = [f"**{name}**: {row['count']} uses • {row['avg_ms']:.0f}ms avg • {row['errors']} errors"
                 for name, row in top]
        embed.add_field(name="⚡ Commands", value="\n".join(lines), inline=False)
    return embed
