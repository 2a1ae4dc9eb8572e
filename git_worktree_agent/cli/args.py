"""Command-line argument parsing for git-worktree-agent."""

import argparse
from git_worktree_agent.__version__ import __version__


def positive_int(value: str) -> int:
    """argparse type for strictly positive integers."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="gwa",
        description="Watch a remote for new branches and provision a git worktree for each one",
        epilog="Without a configuration option the interactive dashboard is started. "
        "Settings are stored in .gwa-config.json in the main worktree.",
    )
    parser.add_argument(
        "-p", "--path", default=".", help="Path inside the repository to watch (default: .)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Write debug logs to ~/.git-worktree-agent/"
    )
    parser.add_argument("--version", action="version", version=f"git-worktree-agent {__version__}")

    config_group = parser.add_argument_group("configuration")
    config_group.add_argument(
        "--init", action="store_true", help="Interactively create or update the configuration"
    )
    config_group.add_argument(
        "--set-command",
        metavar="COMMAND",
        help="Command to run in each new worktree (empty string clears it)",
    )
    config_group.add_argument(
        "--set-poll-interval",
        type=positive_int,
        metavar="SECONDS",
        help="Seconds between fetches",
    )
    config_group.add_argument(
        "--auto-create",
        choices=["on", "off"],
        help="Create worktrees for newly discovered branches automatically",
    )
    config_group.add_argument(
        "--show-config", action="store_true", help="Print the current configuration and exit"
    )

    return parser.parse_args(argv)


def has_config_changes(args) -> bool:
    """True when the arguments change a stored setting."""
    return (
        args.set_command is not None
        or args.set_poll_interval is not None
        or args.auto_create is not None
    )


def is_config_command(args) -> bool:
    """True when the arguments ask for configuration work instead of the dashboard."""
    return bool(args.init or args.show_config or has_config_changes(args))
