"""PID file locking and inspection.

Only one ipherald process may run against a given PID file. The lock is an
exclusive ``flock`` held on the open PID file for the life of the process, so
it is released by the kernel even if the process dies without cleaning up.
"""

from __future__ import annotations

import fcntl
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from ipherald.errors import LockError


@dataclass
class ProcessInfo:
    """Contents of a PID file and whether that process is alive."""

    pid: int
    start_time: float
    alive: bool


class PidLock:
    """Exclusive process lock backed by a PID file.

    Example:
        with PidLock(config.pid_file):
            await scheduler.run(stop_event)
    """

    def __init__(self, pid_path: Path):
        self._pid_path = pid_path.expanduser().absolute()
        self._file: IO[str] | None = None

    @property
    def path(self) -> Path:
        return self._pid_path

    @property
    def locked(self) -> bool:
        return self._file is not None

    def acquire(self) -> None:
        """Take the lock and write the current PID.

        Raises:
            LockError: If another process holds the lock or the file
                cannot be created.
        """
        if self._file is not None:
            return
        try:
            self._pid_path.parent.mkdir(parents=True, exist_ok=True)
            file = self._pid_path.open("a+")
        except OSError as e:
            raise LockError(f"failed to open PID file {self._pid_path}: {e}") from e

        try:
            fcntl.flock(file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as e:
            file.close()
            holder = read_pid_file(self._pid_path)
            held_by = f" (held by PID {holder.pid})" if holder else ""
            raise LockError(f"failed to lock {self._pid_path}{held_by}") from e

        try:
            file.seek(0)
            file.truncate()
            file.write(f"{os.getpid()}\n{time.time()}\n")
            file.flush()
        except OSError as e:
            fcntl.flock(file.fileno(), fcntl.LOCK_UN)
            file.close()
            raise LockError(f"failed to write PID file {self._pid_path}: {e}") from e
        self._file = file

    def release(self) -> None:
        """Remove the PID file and drop the lock.

        Raises:
            LockError: If the lock cannot be released.
        """
        file, self._file = self._file, None
        if file is None:
            return
        try:
            self._pid_path.unlink(missing_ok=True)
            fcntl.flock(file.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            raise LockError(f"failed to unlock {self._pid_path}: {e}") from e
        finally:
            file.close()

    def __enter__(self) -> PidLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


def read_pid_file(pid_path: Path) -> ProcessInfo | None:
    """Parse a PID file written by PidLock.

    Returns None when the file is absent or unparseable; ``alive`` tells
    whether the recorded process still exists.
    """
    try:
        pid_line, _, started = pid_path.read_text().strip().partition("\n")
        pid = int(pid_line)
        start_time = float(started) if started.strip() else 0.0
    except (OSError, ValueError):
        return None
    return ProcessInfo(pid=pid, start_time=start_time, alive=is_process_alive(pid))


def is_process_alive(pid: int) -> bool:
    try:
        # Signal 0 checks the process exists without delivering anything
        os.kill(pid, 0)
    except OSError:
        return False
    return True
