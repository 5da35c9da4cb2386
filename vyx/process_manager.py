"""Spawning and stopping worker child processes."""

from __future__ import annotations

import contextlib
import os
import signal
import subprocess
import threading
from collections.abc import Sequence

DEFAULT_SHUTDOWN_TIMEOUT = 5.0


class ProcessError(Exception):
    """A worker process could not be managed as requested."""


class InvalidCommandError(ProcessError):
    """A worker was given an empty command."""

    def __init__(self) -> None:
        super().__init__("worker: invalid command")


class SpawnFailedError(ProcessError):
    """The operating system refused to start the worker process."""


class WorkerNotFoundError(ProcessError):
    """No process is tracked for the given worker id."""

    def __init__(self, worker_id: str) -> None:
        super().__init__(f"worker: not found: {worker_id}")
        self.worker_id = worker_id


class StopTimeoutError(ProcessError):
    """The worker did not exit within the shutdown timeout and was killed."""

    def __init__(self, worker_id: str) -> None:
        super().__init__(f"worker: stop timed out: {worker_id}")
        self.worker_id = worker_id


class ProcessManager:
    """Starts one child process per worker and stops it on request.

    Each child runs in its own session so that signals aimed at the core do
    not reach it directly. Stopping sends SIGTERM and falls back to SIGKILL
    after ``shutdown_timeout`` seconds.
    """

    def __init__(self, shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        self.shutdown_timeout = shutdown_timeout
        self._lock = threading.Lock()
        self._processes: dict[str, subprocess.Popen[bytes]] = {}

    def spawn(
        self,
        worker_id: str,
        command: str,
        args: Sequence[str] = (),
        work_dir: str | os.PathLike[str] | None = None,
    ) -> None:
        """Start ``command`` with ``args`` for ``worker_id``.

        ``work_dir``, when given, becomes the child's working directory. The
        child's output goes to this process's stdout and stderr.
        """
        if not command:
            raise InvalidCommandError()
        try:
            process = subprocess.Popen(
                [command, *args],
                cwd=os.fspath(work_dir) if work_dir else None,
                start_new_session=True,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            raise SpawnFailedError(f"worker: spawn failed: {exc}") from exc

        with self._lock:
            self._processes[worker_id] = process

        # Reap the child as soon as it exits, expected or not.
        threading.Thread(
            target=process.wait,
            name=f"reap-{worker_id}",
            daemon=True,
        ).start()

    def stop(self, worker_id: str) -> None:
        """Terminate the worker's process and wait for it to exit.

        Raises ``WorkerNotFoundError`` for an unknown worker and
        ``StopTimeoutError`` if the process had to be killed.
        """
        with self._lock:
            process = self._processes.get(worker_id)
        if process is None:
            raise WorkerNotFoundError(worker_id)
        if process.returncode is not None:
            raise ProcessError(f"worker {worker_id}: process already finished")

        try:
            process.send_signal(signal.SIGTERM)
        except OSError as exc:
            raise ProcessError(f"worker {worker_id}: cannot signal process: {exc}") from exc

        try:
            process.wait(timeout=self.shutdown_timeout)
        except subprocess.TimeoutExpired:
            with contextlib.suppress(OSError):
                process.kill()
            raise StopTimeoutError(worker_id) from None

        with self._lock:
            if self._processes.get(worker_id) is process:
                del self._processes[worker_id]

    def stop_all(self) -> None:
        """Stop every tracked worker, raising the last failure after trying all."""
        with self._lock:
            worker_ids = list(self._processes)

        last_error: ProcessError | None = None
        for worker_id in worker_ids:
            try:
                self.stop(worker_id)
            except WorkerNotFoundError:
                continue
            except ProcessError as exc:
                last_error = exc
        if last_error is not None:
            raise last_error

    def send_heartbeat(self, worker_id: str) -> None:
        """Refresh the tracked exit status of the worker's process.

        Heartbeat frames themselves travel over the IPC transport; at the OS
        layer this only polls the child so a dead process is noticed. Unknown
        workers are ignored and nothing is raised.
        """
        with self._lock:
            process = self._processes.get(worker_id)
        if process is not None:
            process.poll()