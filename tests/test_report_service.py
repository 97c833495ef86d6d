"""Tests for ReportService.process_reports (reconciliation against the store)."""

from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest

from reportbot.adapters.base import FetchOutcome, FetchResult, ReportSource
from reportbot.adapters.xenforo import XenForoReportClient
from reportbot.models import Report, WireReport, map_report
from reportbot.notifier.base import ReportNotifier
from reportbot.services.report_service import ReportService, SyncResult, has_new_comment
from reportbot.store import ReportRepository

REPORT_URL = "https://example.com/forums/reports/"


def _wire(report_id: int = 1, comment_ids: tuple[int, ...] = (1,)) -> WireReport:
    return WireReport.model_validate(
        {
            "report_id": report_id,
            "report_count": 1,
            "last_modified_date": 1234567890,
            "first_report_date": 1234567800,
            "content_info": {"username": "TestUser", "thread_title": "Test Thread"},
            "report_comment": [
                {
                    "report_id": report_id,
                    "report_comment_id": cid,
                    "comment_date": 1234567890 + cid,
                    "message": f"Comment {cid}",
                    "username": "Reporter",
                    "state": "open",
                }
                for cid in comment_ids
            ],
        }
    )


def _stored(report_id: int = 1, comment_ids: tuple[int, ...] = (1,)) -> Report:
    return map_report(_wire(report_id, comment_ids), REPORT_URL)


def _fetched(*reports: WireReport) -> FetchResult:
    return FetchResult(FetchOutcome.OK, list(reports), attempts=1)


@pytest.fixture
def source() -> MagicMock:
    mock = MagicMock(spec=ReportSource)
    mock.fetch.return_value = _fetched()
    return mock


@pytest.fixture
def repository() -> MagicMock:
    mock = MagicMock(spec=ReportRepository)
    mock.get.return_value = None
    mock.remove_stale.return_value = 0
    return mock


@pytest.fixture
def notifier() -> MagicMock:
    mock = MagicMock(spec=ReportNotifier)
    mock.send_report.return_value = True
    return mock


@pytest.fixture
def service(source: MagicMock, repository: MagicMock, notifier: MagicMock) -> ReportService:
    return ReportService(source, repository, notifier, REPORT_URL)


class TestNewReports:
    """Reports never seen before are saved (and announced when notify=True)."""

    def test_saves_and_notifies_in_fetch_order(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        source.fetch.return_value = _fetched(_wire(1), _wire(2))

        result = service.process_reports(True)

        assert repository.save.call_count == 2
        assert [c.args[0].report_id for c in notifier.send_report.call_args_list] == [1, 2]
        repository.flush.assert_called_once()
        assert result.created == 2
        assert result.notified == 2

    def test_saved_report_is_mapped(
        self, service: ReportService, source: MagicMock, repository: MagicMock
    ) -> None:
        source.fetch.return_value = _fetched(_wire(7, comment_ids=(1, 4)))

        service.process_reports(True)

        saved = repository.save.call_args.args[0]
        assert isinstance(saved, Report)
        assert saved.report_url == "https://example.com/forums/reports/7"
        assert saved.latest_comment_id == 4

    def test_notify_false_saves_without_notifying(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        source.fetch.return_value = _fetched(_wire(1), _wire(2))

        result = service.process_reports(False)

        assert repository.save.call_count == 2
        repository.flush.assert_called_once()
        notifier.send_report.assert_not_called()
        assert result.created == 2
        assert result.notified == 0


class TestUpdatedReports:
    """Known reports with a different latest comment get their comments replaced."""

    def test_new_comment_updates_and_notifies(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        repository.get.return_value = _stored(1, comment_ids=(1,))
        source.fetch.return_value = _fetched(_wire(1, comment_ids=(1, 2)))

        result = service.process_reports(True)

        repository.update_comments.assert_called_once()
        assert repository.update_comments.call_args.args[0].latest_comment_id == 2
        repository.save.assert_not_called()
        notifier.send_report.assert_called_once()
        repository.flush.assert_called_once()
        assert result.updated == 1
        assert result.created == 0

    def test_update_without_notify(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        repository.get.return_value = _stored(1, comment_ids=(1,))
        source.fetch.return_value = _fetched(_wire(1, comment_ids=(1, 2)))

        service.process_reports(False)

        repository.update_comments.assert_called_once()
        notifier.send_report.assert_not_called()

    def test_unchanged_report_is_left_alone(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        repository.get.return_value = _stored(1, comment_ids=(1, 2))
        source.fetch.return_value = _fetched(_wire(1, comment_ids=(1, 2)))

        result = service.process_reports(True)

        repository.save.assert_not_called()
        repository.update_comments.assert_not_called()
        repository.flush.assert_not_called()
        notifier.send_report.assert_not_called()
        assert result.unchanged == 1
        assert result.changed is False

    def test_both_without_comments_is_unchanged(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        repository.get.return_value = _stored(1, comment_ids=())
        source.fetch.return_value = _fetched(_wire(1, comment_ids=()))

        service.process_reports(True)

        repository.update_comments.assert_not_called()
        notifier.send_report.assert_not_called()

    def test_first_comment_on_report_without_comments_is_update(
        self, service: ReportService, source: MagicMock, repository: MagicMock
    ) -> None:
        repository.get.return_value = _stored(1, comment_ids=())
        source.fetch.return_value = _fetched(_wire(1, comment_ids=(1,)))

        result = service.process_reports(True)

        repository.update_comments.assert_called_once()
        assert result.updated == 1


class TestStaleCleanup:
    """Reports missing from the fetch are garbage collected."""

    def test_remove_stale_called_with_active_ids(
        self, service: ReportService, source: MagicMock, repository: MagicMock
    ) -> None:
        source.fetch.return_value = _fetched(_wire(1), _wire(3))
        repository.remove_stale.return_value = 1

        result = service.process_reports(True)

        repository.remove_stale.assert_called_once_with([1, 3])
        assert result.deleted == 1

    def test_no_reports_removes_everything(
        self, service: ReportService, source: MagicMock, repository: MagicMock
    ) -> None:
        """404 / zero reports: every stored report is stale."""
        source.fetch.return_value = FetchResult(FetchOutcome.NO_REPORTS, attempts=1)

        service.process_reports(True)

        repository.remove_stale.assert_called_once_with([])

    def test_malformed_response_reconciles_as_empty(
        self, service: ReportService, source: MagicMock, repository: MagicMock
    ) -> None:
        source.fetch.return_value = FetchResult(FetchOutcome.MALFORMED, attempts=1)

        result = service.process_reports(True)

        repository.remove_stale.assert_called_once_with([])
        assert result.fetch_outcome == FetchOutcome.MALFORMED

    def test_failed_fetch_keeps_store(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        """An unreachable API does not wipe the known reports."""
        source.fetch.return_value = FetchResult(FetchOutcome.FAILED, attempts=3)

        result = service.process_reports(True)

        repository.get.assert_not_called()
        repository.remove_stale.assert_not_called()
        repository.flush.assert_not_called()
        notifier.send_report.assert_not_called()
        assert result.fetch_outcome == FetchOutcome.FAILED

    def test_invalid_records_stay_active(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        """A record the API returned but that failed validation is not treated as closed."""
        source.fetch.return_value = FetchResult(FetchOutcome.OK, [_wire(1)], attempts=1, invalid_ids=[7])

        result = service.process_reports(True)

        repository.remove_stale.assert_called_once_with([7, 1])
        assert result.created == 1
        assert [c.args[0].report_id for c in notifier.send_report.call_args_list] == [1]


class TestNotificationFailures:
    """A failing notifier never blocks persistence or cleanup."""

    def test_notifier_exception_does_not_abort_cycle(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        source.fetch.return_value = _fetched(_wire(1), _wire(2))
        notifier.send_report.side_effect = RuntimeError("discord down")

        result = service.process_reports(True)

        assert repository.save.call_count == 2
        repository.flush.assert_called_once()
        repository.remove_stale.assert_called_once_with([1, 2])
        assert result.notify_failures == 2
        assert result.notified == 0

    def test_notifier_returning_false_is_counted(
        self, service: ReportService, source: MagicMock, repository: MagicMock, notifier: MagicMock
    ) -> None:
        source.fetch.return_value = _fetched(_wire(1))
        notifier.send_report.return_value = False

        result = service.process_reports(True)

        repository.save.assert_called_once()
        assert result.notify_failures == 1


class TestWithRealRepository:
    """End-to-end cycles against a JSON store in tmp_path."""

    @pytest.fixture
    def repo(self, tmp_path: Path) -> ReportRepository:
        return ReportRepository(tmp_path / "reports.json")

    def test_second_identical_run_is_a_no_op(self, tmp_path: Path, source: MagicMock, notifier: MagicMock) -> None:
        """Unchanged remote collection: no mutations and no alerts the second time."""
        repo = MagicMock(wraps=ReportRepository(tmp_path / "reports.json"))
        service = ReportService(source, repo, notifier, REPORT_URL)
        source.fetch.return_value = _fetched(_wire(1), _wire(2, comment_ids=(1, 2)))

        first = service.process_reports(True)
        assert first.created == 2
        repo.reset_mock()
        notifier.reset_mock()

        second = service.process_reports(True)

        repo.save.assert_not_called()
        repo.update_comments.assert_not_called()
        repo.flush.assert_not_called()
        notifier.send_report.assert_not_called()
        assert second == SyncResult(unchanged=2)

    def test_comment_update_is_persisted(
        self, repo: ReportRepository, source: MagicMock, notifier: MagicMock, tmp_path: Path
    ) -> None:
        repo.save(_stored(1, comment_ids=(1,)))
        repo.flush()
        service = ReportService(source, repo, notifier, REPORT_URL)
        source.fetch.return_value = _fetched(_wire(1, comment_ids=(1, 2)))

        result = service.process_reports(True)

        assert result.updated == 1
        notifier.send_report.assert_called_once()
        stored = ReportRepository(tmp_path / "reports.json").get(1)
        assert stored is not None
        assert len(stored.report_comment) == 2
        assert stored.latest_comment_id == 2

    def test_stale_reports_deleted(self, repo: ReportRepository, source: MagicMock, notifier: MagicMock) -> None:
        for report_id in (1, 2, 3):
            repo.save(_stored(report_id))
        repo.flush()
        service = ReportService(source, repo, notifier, REPORT_URL)
        source.fetch.return_value = _fetched(_wire(1))

        result = service.process_reports(True)

        assert result.deleted == 2
        assert set(repo.get_all()) == {"1"}
        notifier.send_report.assert_not_called()

    def test_invalid_record_is_kept_and_not_reannounced(
        self, repo: ReportRepository, notifier: MagicMock
    ) -> None:
        """A stored report whose API record is briefly invalid survives and is not announced as new."""
        client = XenForoReportClient("https://example.com/api/reports/", "k", sleep=Mock())
        service = ReportService(client, repo, notifier, REPORT_URL)
        valid = _wire(7).model_dump(mode="json")
        broken = _wire(7).model_dump(mode="json")
        broken["report_comment"][0]["report_comment_id"] = None

        responses = [{"reports": [valid]}, {"reports": [broken]}, {"reports": [valid]}]
        results = []
        for body in responses:
            resp = Mock(status_code=200)
            resp.json.return_value = body
            with patch.object(client._session, "get", return_value=resp):
                results.append(service.process_reports(True))

        assert results[1].deleted == 0
        assert "7" in repo.get_all()
        assert results[2].created == 0
        assert results[2].unchanged == 1
        assert notifier.send_report.call_count == 1

    def test_populate_then_notify(self, repo: ReportRepository, source: MagicMock, notifier: MagicMock) -> None:
        """First cycle fills the store silently; a later new report is announced."""
        service = ReportService(source, repo, notifier, REPORT_URL)
        source.fetch.return_value = _fetched(_wire(1), _wire(2))
        service.process_reports(False)
        notifier.send_report.assert_not_called()

        source.fetch.return_value = _fetched(_wire(1), _wire(2), _wire(3))
        result = service.process_reports(True)

        assert result.created == 1
        assert [c.args[0].report_id for c in notifier.send_report.call_args_list] == [3]


def test_has_new_comment() -> None:
    assert has_new_comment(_stored(1, (1,)), _stored(1, (1, 2))) is True
    assert has_new_comment(_stored(1, (1, 2)), _stored(1, (1, 2))) is False
    assert has_new_comment(_stored(1, ()), _stored(1, ())) is False
    assert has_new_comment(_stored(1, (1,)), _stored(1, ())) is True
