"""Process management: PID file locking."""

from ipherald.service.pid import PidLock, ProcessInfo, is_process_alive, read_pid_file

__all__ = ["PidLock", "ProcessInfo", "is_process_alive", "read_pid_file"]
