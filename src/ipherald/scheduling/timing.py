"""Next-run computation for a fixed offset/interval grid."""

from datetime import UTC, datetime, timedelta

from ipherald.scheduling.types import NextRun

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def phase(instant: datetime, interval: timedelta) -> timedelta:
    """Position of ``instant`` within its interval, in ``[0, interval)``.

    timedelta arithmetic is exact to the microsecond, so no precision is lost.
    """
    return (instant - EPOCH) % interval


def compute_next_run(
    now: datetime,
    offset: datetime,
    interval: timedelta,
    last_run: datetime | None,
) -> NextRun:
    """Find the nearest boundary after ``now`` and reconcile it with the last run.

    Args:
        now: Current wall-clock time.
        offset: Any boundary instant; only its phase within ``interval`` matters.
        interval: Distance between boundaries.
        last_run: When the last cycle began, or None if unknown.

    Returns:
        ``run_now`` is set when ``now`` sits exactly on a boundary, when the
        last run is unknown, or when the boundary before ``next_run`` was
        missed. ``was_advanced`` is set when the last run happened after that
        boundary, in which case ``next_run`` moves one interval later so the
        schedule resumes one interval after the actual run.
    """
    if interval <= timedelta(0):
        raise ValueError(f"interval must be positive, got {interval}")

    run_now = False
    diff = phase(offset, interval) - phase(now, interval)
    if diff == timedelta(0):
        diff += interval
        run_now = True
    elif diff < timedelta(0):
        diff += interval

    next_run = now + diff
    expected = next_run - interval

    if last_run is None or last_run < expected:
        return NextRun(next_run, True, False)

    # e.g. boundary 11:05, last run 10:30, so the next run is 12:05
    if last_run > expected:
        return NextRun(next_run + interval, run_now, True)

    return NextRun(next_run, run_now, False)
