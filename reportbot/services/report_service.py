"""Report synchronization: reconcile the API's open reports with the local store.

One call to process_reports() is one cycle: fetch, map, save new reports,
update reports whose latest comment changed, flush, then drop reports the
API no longer returns. Notifications go out for new and updated reports
only when notify=True (the first cycle after start runs with notify=False
so the channel is not flooded with every open report).
"""

import logging
from dataclasses import dataclass

from reportbot.adapters.base import FetchOutcome, ReportSource
from reportbot.models import Report, map_report
from reportbot.notifier.base import ReportNotifier
from reportbot.store.report_store import ReportRepository

LOG = logging.getLogger("reportbot.services.report_service")


@dataclass
class SyncResult:
    """Counts from one synchronization cycle."""

    fetch_outcome: FetchOutcome = FetchOutcome.OK
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    notified: int = 0
    notify_failures: int = 0

    @property
    def changed(self) -> bool:
        """True if the cycle created or updated any report."""
        return bool(self.created or self.updated)


def has_new_comment(existing: Report, report: Report) -> bool:
    """True when the latest comment differs (both missing counts as unchanged)."""
    return existing.latest_comment_id != report.latest_comment_id


class ReportService:
    """Reconciles fetched reports against the repository and sends alerts."""

    def __init__(
        self,
        source: ReportSource,
        repository: ReportRepository,
        notifier: ReportNotifier,
        report_url: str,
    ) -> None:
        self._source = source
        self._repository = repository
        self._notifier = notifier
        self._report_url = report_url

    def process_reports(self, notify: bool) -> SyncResult:
        """Run one cycle. Never raises for fetch or notification failures."""
        LOG.info("Polling report API")
        fetched = self._source.fetch()
        result = SyncResult(fetch_outcome=fetched.outcome)
        if fetched.outcome == FetchOutcome.FAILED:
            LOG.warning("Report fetch failed after %s attempt(s); keeping stored reports", fetched.attempts)
            return result

        # Records that failed validation are left as stored, not garbage-collected.
        active_ids: list[int] = list(fetched.invalid_ids)
        for wire in fetched.reports:
            report = map_report(wire, self._report_url)
            active_ids.append(report.report_id)

            existing = self._repository.get(report.report_id)
            if existing is None:
                self._repository.save(report)
                result.created += 1
                LOG.debug("New report %s", report.report_id)
            elif has_new_comment(existing, report):
                self._repository.update_comments(report)
                result.updated += 1
                LOG.debug(
                    "Report %s has new comment %s (was %s)",
                    report.report_id,
                    report.latest_comment_id,
                    existing.latest_comment_id,
                )
            else:
                result.unchanged += 1
                continue

            if notify:
                self._notify(report, result)

        if result.changed:
            self._repository.flush()
            LOG.info("Saved %s new and %s updated reports", result.created, result.updated)

        result.deleted = self._repository.remove_stale(active_ids)
        if result.deleted > 0:
            LOG.info("Deleted %s stale reports", result.deleted)
        return result

    def _notify(self, report: Report, result: SyncResult) -> None:
        """Send one alert; failures are logged and counted, never raised."""
        try:
            delivered = self._notifier.send_report(report)
        except Exception as e:
            LOG.exception("Notifier raised for report %s: %s", report.report_id, e)
            delivered = False
        if delivered is False:
            result.notify_failures += 1
            LOG.warning("Notification for report %s was not delivered", report.report_id)
        else:
            result.notified += 1
