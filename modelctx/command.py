"""A transport that runs a command and talks to it over its stdin and stdout."""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from typing import Optional

__all__ = ["PipeConnection", "CommandTransport"]

_SHUTDOWN_TIMEOUT = 5.0


class PipeConnection:
    """A byte stream to a child process: reads its stdout, writes its stdin.

    Closing follows the stdio shutdown sequence: close the child's input,
    wait for it to exit, then terminate it, and finally kill it.
    """

    def __init__(self, process: subprocess.Popen, shutdown_timeout: float = _SHUTDOWN_TIMEOUT) -> None:
        if process.stdin is None or process.stdout is None:
            raise ValueError("process must have piped stdin and stdout")
        self._process = process
        self._stdin = process.stdin
        self._stdout = process.stdout
        self._timeout = shutdown_timeout

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes from the child's stdout; b"" at end of stream."""
        return self._stdout.read1(size)

    def readline(self) -> bytes:
        """Read one line from the child's stdout, including its newline."""
        return self._stdout.readline()

    def write(self, data: bytes) -> int:
        """Write ``data`` to the child's stdin and flush it."""
        n = self._stdin.write(data)
        self._stdin.flush()
        return n

    def _wait(self) -> bool:
        try:
            self._process.wait(timeout=self._timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def _finish(self) -> None:
        self._stdout.close()
        code = self._process.returncode
        if code != 0:
            raise subprocess.CalledProcessError(code, self._process.args)

    def close(self) -> None:
        """Shut the child down and wait for it.

        Raises CalledProcessError if it exits unsuccessfully, and
        RuntimeError if it cannot be made to exit at all.
        """
        try:
            self._stdin.close()
        except OSError as exc:
            raise OSError(f"closing stdin: {exc}") from exc
        if self._wait():
            self._finish()
            return
        # If signalling fails, move straight on to killing.
        try:
            self._process.terminate()
        except OSError:
            pass
        else:
            if self._wait():
                self._finish()
                return
        self._process.kill()
        if self._wait():
            self._finish()
            return
        raise RuntimeError("unresponsive subprocess")

    def __enter__(self) -> PipeConnection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CommandTransport:
    """Runs a command on connect and communicates with it over its pipes."""

    def __init__(self, args: Sequence[str], env: Optional[Mapping[str, str]] = None) -> None:
        self._args = list(args)
        self._env = dict(env) if env is not None else None
        self._started = False

    def connect(self) -> PipeConnection:
        """Start the command and return a connection to it."""
        if self._started:
            raise RuntimeError("command already started")
        process = subprocess.Popen(
            self._args,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            env=self._env,
        )
        self._started = True
        return PipeConnection(process)