"""Gemini agent driving the tool adapter."""

from genui_expenses.agents.expense_agent import (
    AgentError,
    ExpenseAgent,
    function_calls,
    reply_text,
    to_function_declaration,
    to_plain,
)
from genui_expenses.agents.prompts import build_system_instruction

__all__ = [
    "AgentError",
    "ExpenseAgent",
    "build_system_instruction",
    "function_calls",
    "reply_text",
    "to_function_declaration",
    "to_plain",
]
