"""Formatting utilities for git-worktree-agent.

This package provides the formatting functions used by the dashboard,
organized into logical modules:
- date: Date and time formatting
- status: Branch status and status-bar formatting
- logs: Command log formatting
"""

# Date formatters
from .date import format_date, format_age

# Status formatters
from .status import (
    format_status,
    format_status_symbol,
    format_branch_name,
    format_status_bar,
)

# Log formatters
from .logs import format_log, format_log_header, format_logs

__all__ = [
    # Date
    "format_date",
    "format_age",
    # Status
    "format_status",
    "format_status_symbol",
    "format_branch_name",
    "format_status_bar",
    # Logs
    "format_log",
    "format_log_header",
    "format_logs",
]
