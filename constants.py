"""
AI Relay - Constants
Centralized configuration constants to avoid magic numbers throughout the codebase.
"""

# =============================================================================
# RESPONSE CACHE
# =============================================================================

AI_RESPONSE_CACHE_TTL = 600.0      # Seconds an AI reply stays cached (10 minutes)
MAX_CACHEABLE_RESPONSE_CHARS = 4000  # Replies this long or longer are never cached
CACHE_KEY_LENGTH = 16              # Hex chars kept from the sha256 fingerprint

# =============================================================================
# RATE LIMITING
# =============================================================================

RATE_LIMIT_STALE_AGE = 3600.0      # Seconds before an idle limiter key is dropped (1 hour)
USER_COMMAND_LIMIT = 10            # Max /ai commands per user per window
USER_COMMAND_WINDOW = 60.0         # Per-user window in seconds
API_CALL_LIMIT = 60                # Max outbound completion calls per window
API_CALL_WINDOW = 60.0

# =============================================================================
# MEMORY SAMPLING
# =============================================================================

MEMORY_SAMPLE_INTERVAL = 30.0      # Seconds between process memory samples
MEMORY_SAMPLE_LIMIT = 100          # Samples kept for /performance memory
MEMORY_WARN_MB = 100.0             # RSS above this logs a high-usage warning

# =============================================================================
# INPUT VALIDATION
# =============================================================================

MAX_PROMPT_LENGTH = 2000           # Matches Discord's slash option limit

# =============================================================================
# DISCORD
# =============================================================================

MAX_MESSAGE_LENGTH = 2000          # Discord's max message length
MAX_EMBED_DESCRIPTION = 4096       # Discord's max embed description length

# =============================================================================
# AI DEFAULTS
# =============================================================================

DEFAULT_SYSTEM_MESSAGE = (
    "You are a helpful AI assistant with a friendly, engaging personality. "
    "Use emojis appropriately and format your responses to be clear and interesting."
)
DEFAULT_TOP_P = 0.9
DEFAULT_FREQUENCY_PENALTY = 0.3
DEFAULT_PRESENCE_PENALTY = 0.3

# Circuit breaker names
AI_BREAKER = "github_ai"

# Fallback strategy names
AI_FALLBACK = "ai_generation"

FALLBACK_AI_RESPONSE = (
    "I'm experiencing technical difficulties right now. "
    "Please try again in a moment! (´﹏｀)"
)

# =============================================================================
# USER-FRIENDLY ERROR MESSAGES
# =============================================================================

USER_FRIENDLY_ERRORS = {
    "rate_limit": "You're sending requests too quickly. Please try again shortly.",
    "timeout": "The AI service is taking too long to respond. Please try again.",
    "auth": "The AI service is misconfigured. Please let the bot owner know.",
    "upstream_rate_limit": "The AI service is busy right now. Please wait a moment.",
    "server": "The AI service is temporarily unavailable.",
    "network": "Couldn't reach the AI service. Please try again.",
    "validation": "That input can't be processed. Please check it and try again.",
    "invalid_response": "Received an invalid response. Please try again.",
    "circuit_open": "The AI service is recovering from errors. Please try again later.",
    "default": "Something went wrong. Please try again.",
}
