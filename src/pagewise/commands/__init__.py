"""Command interpretation and dispatch."""

from pagewise.commands.dispatcher import ActionDispatcher
from pagewise.commands.interpreter import RULES, CommandRule, interpret

__all__ = ["ActionDispatcher", "CommandRule", "RULES", "interpret"]
