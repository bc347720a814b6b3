"""
GenUI Expense Tracker - Source Package

A conversational expense tracker whose screen is described at runtime
by a Gemini model through a widget catalog.

DESIGN PRINCIPLES:
1. The model talks, the ledger decides
2. Malformed model output degrades, never crashes
3. Every tool call is auditable
4. Components are wired explicitly, never through globals
"""

__version__ = "1.0.0"
__author__ = "GenUI Expense Tracker Team"
