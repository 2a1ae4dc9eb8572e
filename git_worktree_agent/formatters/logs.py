"""Command log formatting utilities."""

from typing import Iterable

from rich.text import Text

from git_worktree_agent.constants import LOG_COLORS
from git_worktree_agent.models.command import CommandLog, Error, Exit, Stderr, Stdout


def format_log_header(log: CommandLog) -> Text:
    """
    Format the summary line of a command log.

    Args:
        log: Command log

    Returns:
        Styled summary ("Running: ...", "✓ ..." or "✗ ... (exit code: N)")
    """
    if log.is_running:
        style = LOG_COLORS["running"]
    elif log.succeeded():
        style = LOG_COLORS["success"]
    else:
        style = LOG_COLORS["failure"]

    header = Text(log.summary(), style=f"bold {style}")
    if log.is_system_log:
        header.append(f"  [{log.branch}]", style="dim")
    return header


def format_log(log: CommandLog) -> Text:
    """Format a command log with all of its output lines."""
    text = format_log_header(log)
    for output in log.output:
        if isinstance(output, Stdout):
            text.append(f"\n  {output.line}")
        elif isinstance(output, Stderr):
            text.append(f"\n  {output.line}", style=LOG_COLORS["stderr"])
        elif isinstance(output, Error):
            text.append(f"\n  Error: {output.message}", style=LOG_COLORS["failure"])
        elif isinstance(output, Exit) and output.code != 0:
            text.append(f"\n  exit code {output.code}", style=LOG_COLORS["failure"])
    return text


def format_logs(logs: Iterable[CommandLog], empty: str = "No logs yet") -> Text:
    """Join several logs, newest last, separated by blank lines."""
    logs = list(logs)
    if not logs:
        return Text(empty, style="dim")
    return Text("\n\n").join(format_log(log) for log in logs)
