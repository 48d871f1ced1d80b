"""
PsExec Bridge - Execution engine.
Runs one rendered command through PsExec and returns its captured output.

Listings are redirected into a capture file on the remote side and read
back after the process exits: PsExec relays console output over its own
channel and truncates or interleaves larger outputs when read directly.
"""
import logging
import os
import subprocess
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from .artifacts import ArtifactManager, Role
from .command_builder import build_command_line, redact, render
from .config import BridgeConfig
from .errors import ExecutionFailed, ExecutionTimeout
from .models import RemoteCommandResult

logger = logging.getLogger(__name__)


class RemoteProcess:
    """Narrow seam around the child process; tests substitute a fake."""

    def execute_remote(self, command_line: str, timeout_s: float) -> RemoteCommandResult:
        raise NotImplementedError


class PsExecProcess(RemoteProcess):
    def execute_remote(self, command_line: str, timeout_s: float) -> RemoteCommandResult:
        if os.name != "nt":
            raise ExecutionFailed("PsExec bridge requires Windows cmd.exe")
        try:
            # A str is handed to CreateProcess verbatim; the nested quoting
            # of cmd /c "..." must survive untouched.
            completed = subprocess.run(
                command_line,
                capture_output=True,
                text=True,
                timeout=timeout_s,
            )
        except subprocess.TimeoutExpired:
            raise ExecutionTimeout(details=f"No exit after {timeout_s}s")
        except OSError as e:
            raise ExecutionFailed("Could not start PsExec", stderr_text=str(e))
        return RemoteCommandResult(
            exit_succeeded=completed.returncode == 0,
            captured_output=completed.stdout or "",
            error_text=completed.stderr or None,
            exit_code=completed.returncode,
        )


class RemoteCommandRunner:
    def __init__(self, config: BridgeConfig, artifacts: ArtifactManager,
                 process: Optional[RemoteProcess] = None):
        self.config = config
        self.artifacts = artifacts
        self.process = process or PsExecProcess()
        self._slots = threading.BoundedSemaphore(config.max_concurrent_commands)

    def run(self, operation: str, args: Dict[str, Union[str, Path]],
            capture: bool = False, ok_codes: Iterable[int] = (0,)) -> RemoteCommandResult:
        """
        Execute ``operation`` with ``args``.
        With ``capture`` the remote output is redirected into a fresh capture
        artifact, read back, and the artifact is deleted before returning.
        Raises ExecutionFailed for exit codes outside ``ok_codes``.
        """
        if not capture:
            return self._execute(operation, render(operation, args), ok_codes)

        with self.artifacts.managed(Role.CAPTURE) as artifact:
            result = self._execute(operation, render(operation, args, capture=artifact.path), ok_codes)
            if artifact.path.exists():
                result.captured_output = artifact.path.read_text(
                    encoding=self.config.console_encoding, errors="replace"
                )
            else:
                result.captured_output = ""
            return result

    def _execute(self, operation: str, remote_command: str,
                 ok_codes: Iterable[int]) -> RemoteCommandResult:
        command_line = build_command_line(self.config, remote_command)
        timeout_s = self.config.command_timeout_s

        if not self._slots.acquire(timeout=timeout_s):
            raise ExecutionTimeout("Too many remote commands in flight")
        try:
            logger.info("remote %s: %s", operation, redact(self.config, remote_command))
            result = self.process.execute_remote(command_line, timeout_s)
        except ExecutionTimeout:
            logger.error("remote %s timed out after %ss", operation, timeout_s)
            raise
        finally:
            self._slots.release()

        if result.exit_code not in tuple(ok_codes):
            stderr_text = result.error_text or result.captured_output or ""
            logger.error("remote %s failed (exit %s): %s", operation, result.exit_code, stderr_text.strip())
            raise ExecutionFailed(
                f"Remote {operation} failed",
                exit_code=result.exit_code,
                stderr_text=stderr_text,
            )
        return result
