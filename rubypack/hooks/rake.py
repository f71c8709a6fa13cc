"""
Conditional rake task execution.

A task runs only if `bundle exec rake TASK --dry-run` succeeds. When it
runs, its own failure is reported as a warning and the build goes on.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rubypack.core.environment import EnvironmentVariableSet
from rubypack.core.exceptions import ProcessExecutionError
from rubypack.core.process import ProcessExecutor

logger = logging.getLogger(__name__)

ASSETS_PRECOMPILE = "assets:precompile"


@dataclass(frozen=True)
class HookOutcome:
    """
    Result of run_if_defined().

    Attributes:
        task: Rake task name
        defined: Whether the dry-run found the task
        succeeded: Exit status of the real run (None if not run)
        duration: Wall-clock seconds of the real run (None if not run)
    """

    task: str
    defined: bool
    succeeded: Optional[bool] = None
    duration: Optional[float] = None

    @property
    def ran(self) -> bool:
        return self.succeeded is not None


class RakeTaskRunner:
    """Run a rake task through bundler if the app defines it."""

    def __init__(self, build_dir: Path, executor: ProcessExecutor):
        self.build_dir = Path(build_dir)
        self.executor = executor

    def is_defined(self, task: str, env: EnvironmentVariableSet) -> bool:
        """Check for the task with a dry run."""
        try:
            result = self.executor.run(
                ["bundle", "exec", "rake", task, "--dry-run"],
                env=env.as_environ(),
            )
        except ProcessExecutionError as e:
            logger.warning(f"Could not check for rake task {task}: {e}")
            return False
        return result.success

    def run_if_defined(self, task: str, env: EnvironmentVariableSet) -> HookOutcome:
        """
        Run task if the dry run finds it, streaming its output.

        Args:
            task: Rake task name (e.g., 'assets:precompile')
            env: Build-time environment

        Returns:
            HookOutcome; duration is only set when the task ran
        """
        if not self.is_defined(task, env):
            logger.debug(f"Rake task {task} is not defined, skipping")
            return HookOutcome(task=task, defined=False)

        logger.info(f"-----> Running: rake {task}")
        path = env.get("PATH")
        bin_dir = str(self.build_dir / "bin")
        extra = {"PATH": f"{path}:{bin_dir}" if path else bin_dir}

        started = time.monotonic()
        try:
            result = self.executor.pipe(
                ["bundle", "exec", "rake", task], env=env.as_environ(extra)
            )
            succeeded = result.success
        except ProcessExecutionError as e:
            logger.warning(f"rake {task} could not be started: {e}")
            succeeded = False
        duration = time.monotonic() - started

        if succeeded:
            logger.info(f"Rake task {task} completed ({duration:.2f}s)")
        else:
            logger.warning(f"Rake task {task} failed; continuing the build")

        return HookOutcome(
            task=task, defined=True, succeeded=succeeded, duration=duration
        )
