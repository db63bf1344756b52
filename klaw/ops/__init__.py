"""Chat-ops command handling."""

from klaw.ops.handler import HELP_TEXT, CommandHandler

__all__ = ["HELP_TEXT", "CommandHandler"]
