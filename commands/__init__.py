"""
AI Relay - Commands Package
Organizes slash commands into logical groups.
"""

# Re-export command registration functions for easy import
from .core import setup_core_commands
from .ai import setup_ai_commands
from .performance import setup_performance_commands


def setup_all_commands(bot_instance):
    """Register all commands for a bot instance."""
    setup_core_commands(bot_instance)
    setup_ai_commands(bot_instance)
    setup_performance_commands(bot_instance)
