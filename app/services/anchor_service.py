"""
Anchor Service - Runs the anchor CLI against the workspace.

stdout and stderr of every invocation are captured as one stream, the same
text a developer would see in a terminal.
"""
import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from app.constants import COMMAND_NOT_FOUND_EXIT_CODE

logger = logging.getLogger(__name__)

# Mocha and cargo both honour these; ANSI codes would break log parsing
NO_COLOR_ENV = {"NO_COLOR": "1", "FORCE_COLOR": "0", "CARGO_TERM_COLOR": "never"}


@dataclass
class ToolchainResult:
    """Outcome of one anchor invocation."""
    command: List[str]
    returncode: int
    output: str
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class AnchorCommandError(Exception):
    """Raised when an anchor invocation fails, times out or cannot start."""

    def __init__(self, message: str, result: ToolchainResult):
        super().__init__(message)
        self.result = result

    @property
    def output(self) -> str:
        return self.result.output


def _decode(output: Union[str, bytes, None]) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode('utf-8', errors='replace')
    return output


def _kill_process_group(process: subprocess.Popen) -> None:
    """SIGKILL the process and everything it spawned in its session."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug(f"Process group {process.pid} already exited")


class AnchorRunner:
    """
    Thin wrapper around the anchor CLI for one workspace.

    Usage:
        runner = AnchorRunner(workspace_root, binary="anchor")
        result = runner.build("my_program")
    """

    def __init__(
        self,
        workspace_root: Path,
        binary: str = "anchor",
        build_timeout: Optional[int] = None,
        test_timeout: Optional[int] = None,
        test_extra_args: Sequence[str] = ()
    ):
        """
        Initialize anchor runner.

        Args:
            workspace_root: Directory containing Anchor.toml
            binary: anchor executable name or path
            build_timeout: Seconds before `anchor build` is killed (None = no limit)
            test_timeout: Seconds before `anchor test` is killed (None = no limit)
            test_extra_args: Extra arguments appended to `anchor test`
        """
        self.workspace_root = Path(workspace_root)
        self.binary = binary
        self.build_timeout = build_timeout
        self.test_timeout = test_timeout
        self.test_extra_args = list(test_extra_args)

    def _run(self, args: List[str], timeout: Optional[int]) -> ToolchainResult:
        command = [self.binary, *args]
        logger.info(f"Running '{' '.join(command)}' in {self.workspace_root}")

        try:
            # Own session: `anchor test` spawns solana-test-validator, which
            # must die with it on timeout
            process = subprocess.Popen(
                command,
                cwd=self.workspace_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors='replace',
                env={**os.environ, **NO_COLOR_ENV},
                start_new_session=True
            )
        except FileNotFoundError as e:
            result = ToolchainResult(
                command=command,
                returncode=COMMAND_NOT_FOUND_EXIT_CODE,
                output=str(e)
            )
            raise AnchorCommandError(f"'{self.binary}' executable not found", result) from e

        try:
            output, _ = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            _kill_process_group(process)
            process.wait()
            result = ToolchainResult(
                command=command,
                returncode=-1,
                output=_decode(e.output),
                timed_out=True
            )
            logger.warning(f"'{' '.join(command)}' timed out after {timeout}s; process group killed")
            raise AnchorCommandError(f"timed out after {timeout} seconds", result) from e

        result = ToolchainResult(
            command=command,
            returncode=process.returncode,
            output=output or ""
        )
        if not result.succeeded:
            logger.warning(f"'{' '.join(command)}' exited with status {result.returncode}")
            raise AnchorCommandError(f"exit status {result.returncode}", result)

        logger.info(f"'{' '.join(command)}' finished successfully")
        return result

    def build(self, project_name: str) -> ToolchainResult:
        """
        Run `anchor build -p <project_name>`.

        Raises:
            AnchorCommandError: On non-zero exit, timeout or missing binary
        """
        return self._run(["build", "-p", project_name], self.build_timeout)

    def test(self, project_name: str) -> ToolchainResult:
        """
        Run `anchor test -p <project_name>`.

        Raises:
            AnchorCommandError: On non-zero exit (including failing tests),
                timeout or missing binary
        """
        return self._run(["test", "-p", project_name, *self.test_extra_args], self.test_timeout)
