"""Scheduler: run a report sync cycle every interval, one cycle at a time."""

import logging
import threading
import time
from typing import Callable

from reportbot.adapters.base import FetchOutcome
from reportbot.services.report_service import ReportService

LOG = logging.getLogger("reportbot.scheduler")


def run_poll_loop(
    service: ReportService,
    interval_seconds: float,
    stop_event: threading.Event | None = None,
    max_cycles: int | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Loop: every interval_seconds, run service.process_reports.

    The first completed cycle populates the store without notifying; later
    cycles notify. A cycle that overruns the interval is never overlapped:
    missed ticks are skipped. Returns the number of cycles run.
    """
    stop = stop_event or threading.Event()
    notify = False
    cycles = 0
    next_tick = clock()

    while not stop.is_set():
        try:
            result = service.process_reports(notify)
        except Exception as e:
            LOG.exception("Poll cycle error: %s", e)
        else:
            if not notify and result.fetch_outcome != FetchOutcome.FAILED:
                LOG.info("Initial report data loaded (%s reports); notifications enabled", result.created)
                notify = True
        cycles += 1
        if max_cycles is not None and cycles >= max_cycles:
            break

        if interval_seconds <= 0:
            continue
        next_tick += interval_seconds
        now = clock()
        if next_tick <= now:
            skipped = int((now - next_tick) // interval_seconds) + 1
            next_tick += skipped * interval_seconds
            LOG.warning("Poll cycle overran the %ss interval; skipping %s tick(s)", interval_seconds, skipped)
        stop.wait(next_tick - now)

    LOG.info("Poll loop stopped after %s cycle(s)", cycles)
    return cycles
