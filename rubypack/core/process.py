"""
External command execution for rubypack.

ProcessExecutor is the only place in rubypack that spawns child
processes. Every invocation returns an explicit ProcessResult; callers
inspect that value instead of any process-global exit status.

Example:
    >>> executor = ProcessExecutor(Path('/tmp/build'))
    >>> result = executor.run(['ruby', '-v'])
    >>> if result.success:
    ...     print(result.stdout)
"""

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, TextIO, Union

from rubypack.core.exceptions import ProcessExecutionError

logger = logging.getLogger(__name__)

Command = Sequence[Union[str, Path]]


@dataclass(frozen=True)
class ProcessResult:
    """
    Outcome of a single command invocation.

    Attributes:
        command: The command line that was run
        returncode: Exit status of the child process
        stdout: Captured standard output (combined output for pipe())
        stderr: Captured standard error (empty for pipe())
    """

    command: str
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        if self.stdout and self.stderr:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr


def format_command(cmd: Command) -> str:
    """Render a command for logs and error messages."""
    return " ".join(shlex.quote(str(part)) for part in cmd)


class ProcessExecutor:
    """
    Run external commands relative to a build directory.

    Both run() and pipe() block until the child exits. There is no
    timeout and no retry.

    Attributes:
        cwd: Default working directory for commands
        env: Default child environment when a call passes none
        output: Stream that pipe() copies live output to
    """

    def __init__(
        self,
        cwd: Path,
        env: Optional[Mapping[str, str]] = None,
        output: Optional[TextIO] = None,
    ):
        self.cwd = Path(cwd)
        self.env = dict(env) if env is not None else None
        self.output = output

    def _resolve(
        self, cmd: Command, env: Optional[Mapping[str, str]], cwd: Optional[Path]
    ):
        argv: List[str] = [str(part) for part in cmd]
        if not argv:
            raise ValueError("Command cannot be empty")
        child_env = dict(env) if env is not None else self.env
        return argv, child_env, str(cwd or self.cwd)

    def run(
        self,
        cmd: Command,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        """
        Run a command and capture its output.

        Args:
            cmd: Command and arguments
            env: Complete child environment (executor default if None)
            cwd: Working directory (executor default if None)

        Returns:
            ProcessResult with separate stdout and stderr

        Raises:
            ProcessExecutionError: If the command cannot be started
        """
        argv, child_env, workdir = self._resolve(cmd, env, cwd)
        command = format_command(argv)
        logger.debug(f"Running: {command} (cwd={workdir})")

        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=workdir,
                env=child_env,
            )
        except OSError as e:
            raise ProcessExecutionError(command, str(e)) from e

        logger.debug(f"Exit status {completed.returncode}: {command}")
        return ProcessResult(
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def run_stdout(
        self,
        cmd: Command,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> str:
        """Run a command and return its stdout without trailing whitespace."""
        return self.run(cmd, env=env, cwd=cwd).stdout.rstrip()

    def pipe(
        self,
        cmd: Command,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        """
        Run a command, streaming combined output live while capturing it.

        stderr is merged into stdout so the captured text is in the same
        order the user saw it.

        Returns:
            ProcessResult whose stdout holds the combined output

        Raises:
            ProcessExecutionError: If the command cannot be started
        """
        argv, child_env, workdir = self._resolve(cmd, env, cwd)
        command = format_command(argv)
        stream = self.output or sys.stdout
        logger.debug(f"Piping: {command} (cwd={workdir})")

        captured: List[str] = []
        try:
            with subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=workdir,
                env=child_env,
            ) as proc:
                for line in proc.stdout:
                    captured.append(line)
                    stream.write(line)
                    stream.flush()
                returncode = proc.wait()
        except OSError as e:
            raise ProcessExecutionError(command, str(e)) from e

        logger.debug(f"Exit status {returncode}: {command}")
        return ProcessResult(
            command=command, returncode=returncode, stdout="".join(captured)
        )
