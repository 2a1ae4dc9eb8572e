"""Command execution for post-create hooks.

Runs the configured command (e.g. ``npm install``) inside a new worktree and
streams its output back through a queue the driver polls without blocking.
"""

import queue
import subprocess
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable, List, Union

from git_worktree_agent.models.command import (
    CommandOutput,
    Error,
    Exit,
    Stderr,
    Stdout,
)
from git_worktree_agent.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RunningCommand:
    """Handle to a command running in the background."""

    command: str
    output: "queue.Queue[CommandOutput]"
    thread: threading.Thread

    def poll(self) -> List[CommandOutput]:
        """Return every message that has arrived so far, never blocking."""
        messages = []
        while True:
            try:
                messages.append(self.output.get_nowait())
            except queue.Empty:
                return messages

    def is_alive(self) -> bool:
        return self.thread.is_alive()


class CommandExecutor:
    """Execute shell commands in a worktree directory."""

    @staticmethod
    def run_sync(command: str, working_dir: Union[str, Path]) -> tuple[int, str, str]:
        """Run a command to completion.

        Returns:
            Tuple of (exit_code, stdout, stderr)

        Raises:
            OSError: If the shell cannot be started
        """
        logger.info(f"Running command: {command} in {working_dir}")
        result = subprocess.run(
            command,
            shell=True,
            cwd=str(working_dir),
            capture_output=True,
            text=True,
            errors="replace",
        )
        exit_code = result.returncode if result.returncode >= 0 else -1
        logger.debug(f"Command exited with code: {exit_code}")
        return exit_code, result.stdout, result.stderr

    @classmethod
    def run_async(cls, command: str, working_dir: Union[str, Path]) -> RunningCommand:
        """Run a command in the background with streaming output.

        Messages arrive on ``RunningCommand.output``: any number of
        ``Stdout``/``Stderr`` lines followed by exactly one ``Exit`` or
        ``Error``. Lines keep their order within a stream; the two streams
        are not ordered relative to each other.
        """
        logger.info(f"Starting async command: {command} in {working_dir}")
        output: "queue.Queue[CommandOutput]" = queue.Queue()

        thread = threading.Thread(
            target=cls._run_with_output,
            args=(command, str(working_dir), output.put),
            name=f"hook: {command}",
            daemon=True,
        )
        thread.start()
        return RunningCommand(command=command, output=output, thread=thread)

    @staticmethod
    def _run_with_output(command: str, working_dir: str, send: Callable[[CommandOutput], None]):
        try:
            process = subprocess.Popen(
                command,
                shell=True,
                cwd=working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            logger.error(f"Failed to spawn command '{command}': {e}")
            send(Error(f"Failed to spawn command: {command}: {e}"))
            return

        def pump(stream: IO[str], wrap: Callable[[str], CommandOutput]):
            with stream:
                for line in stream:
                    send(wrap(line.rstrip("\r\n")))

        # Both readers must finish before the exit code is sent, so Exit is
        # always the last message.
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="hook-reader") as readers:
            futures = [
                readers.submit(pump, process.stdout, Stdout),
                readers.submit(pump, process.stderr, Stderr),
            ]
            wait(futures)

        for future in futures:
            if future.exception() is not None:
                logger.warning(f"Output reader for '{command}' failed: {future.exception()}")

        returncode = process.wait()
        exit_code = returncode if returncode >= 0 else -1
        send(Exit(exit_code))

        if exit_code != 0:
            logger.error(f"Command failed with exit code: {exit_code}")
        else:
            logger.debug(f"Command finished: {command}")
