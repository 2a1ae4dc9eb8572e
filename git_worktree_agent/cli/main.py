"""Command-line interface for git-worktree-agent"""

import sys

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from git_worktree_agent.cli.args import has_config_changes, is_config_command, parse_args
from git_worktree_agent.config import Config
from git_worktree_agent.exceptions import GitWorktreeAgentError
from git_worktree_agent.services.git import Repository
from git_worktree_agent.utils.logging import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


def run_init(repository: Repository, config: Config) -> Config:
    """Ask for each setting, using the current values as defaults."""
    console.print(f"[bold]Configuring git-worktree-agent for[/bold] {repository.main_root}\n")

    remotes = repository.get_remotes()
    if remotes:
        default_remote = config.remote_name if config.remote_name in remotes else remotes[0]
        config.remote_name = Prompt.ask("Remote to watch", choices=remotes, default=default_remote)
    else:
        console.print("[yellow]No remotes configured; add one with 'git remote add'.[/yellow]")

    command = Prompt.ask(
        "Command to run in new worktrees (blank for none)",
        default=config.post_create_command or "",
        show_default=bool(config.post_create_command),
    )
    config.post_create_command = command.strip() or None

    if config.post_create_command:
        working_dir = Prompt.ask(
            "Directory to run it in, relative to the worktree (blank for the root)",
            default=config.command_working_dir or "",
            show_default=bool(config.command_working_dir),
        )
        config.command_working_dir = working_dir.strip() or None

    while True:
        interval = IntPrompt.ask("Seconds between fetches", default=config.poll_interval_secs)
        if interval > 0:
            config.poll_interval_secs = interval
            break
        console.print("[red]Please enter a positive number[/red]")

    config.auto_create_worktrees = Confirm.ask(
        "Create worktrees for new branches automatically?", default=config.auto_create_worktrees
    )

    default_branch = repository.get_default_branch(config.remote_name) or ""
    base_branch = Prompt.ask(
        "Base branch for new worktrees (blank to detect)",
        default=config.base_branch or default_branch,
    )
    config.base_branch = base_branch.strip() or None

    return config


def show_config(repository: Repository, config: Config) -> None:
    table = Table(title=str(Config.path_for(repository.main_root)), show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value) if value else "-"
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


def apply_config_args(args, config: Config) -> None:
    if args.set_command is not None:
        config.post_create_command = args.set_command.strip() or None
    if args.set_poll_interval is not None:
        config.poll_interval_secs = args.set_poll_interval
    if args.auto_create is not None:
        config.auto_create_worktrees = args.auto_create == "on"


def main(argv=None) -> int:
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    configuring = is_config_command(parsed_args)

    # The dashboard owns the terminal, so logs only go to the log file
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug, tui_mode=not configuring)

    try:
        repository = Repository.discover(parsed_args.path)
        config = Config.load(repository.main_root)

        if configuring:
            if parsed_args.init:
                config = run_init(repository, config)
            apply_config_args(parsed_args, config)
            if parsed_args.init or has_config_changes(parsed_args):
                config.save(repository.main_root)
                console.print(
                    f"[green]Saved configuration to {Config.path_for(repository.main_root)}[/green]"
                )
            if parsed_args.show_config:
                show_config(repository, config)
            return 0

        if not Config.exists(repository.main_root) and sys.stdin.isatty():
            console.print("[yellow]No configuration found, starting setup.[/yellow]")
            config = run_init(repository, config)
            config.save(repository.main_root)

        repository.validate_remote(config.remote_name)

        from git_worktree_agent.core import WorktreeAgent
        from git_worktree_agent.tui import WorktreeAgentApp

        agent = WorktreeAgent(repository, config)
        app = WorktreeAgentApp(agent)
        app.run()

        # Printed last so a shell wrapper can cd into it
        if app.exit_path is not None:
            print(app.exit_path)
        return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except GitWorktreeAgentError as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.debug("Fatal error", exc_info=True)
        return 1
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
