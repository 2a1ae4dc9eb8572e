"""Command output messages and command logs."""
from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass(frozen=True)
class Stdout:
    """Standard output line."""
    line: str


@dataclass(frozen=True)
class Stderr:
    """Standard error line."""
    line: str


@dataclass(frozen=True)
class Exit:
    """Command completed with exit code."""
    code: int


@dataclass(frozen=True)
class Error:
    """Command failed to start."""
    message: str


CommandOutput = Union[Stdout, Stderr, Exit, Error]


def is_terminal(output: CommandOutput) -> bool:
    """True for the last message a command ever sends."""
    return isinstance(output, (Exit, Error))


@dataclass
class CommandLog:
    """Append-only record of one external command and its output."""

    branch: str  # Branch name, or a synthetic tag such as "fetch:origin"
    command: str
    output: List[CommandOutput] = field(default_factory=list)
    is_running: bool = True
    exit_code: Optional[int] = None
    is_system_log: bool = False

    @classmethod
    def system(cls, name: str, command: str) -> "CommandLog":
        """Create a log for non-branch work (fetch, etc.)."""
        return cls(branch=name, command=command, is_system_log=True)

    def add_output(self, output: CommandOutput) -> None:
        if isinstance(output, Exit):
            self.is_running = False
            self.exit_code = output.code
        elif isinstance(output, Error):
            self.is_running = False
            self.exit_code = -1
        self.output.append(output)

    def succeeded(self) -> bool:
        return self.exit_code == 0

    def summary(self) -> str:
        if self.is_running:
            return f"Running: {self.command}"
        if self.succeeded():
            return f"✓ {self.command}"
        code = self.exit_code if self.exit_code is not None else -1
        return f"✗ {self.command} (exit code: {code})"
