"""XenForo report API client with bounded retry and linear backoff."""

import logging
import time
from typing import Any, Callable, Dict, List, Tuple

import requests
from pydantic import ValidationError
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from reportbot.adapters.base import FetchOutcome, FetchResult, ReportApiError, ReportSource
from reportbot.models import WireReport

LOG = logging.getLogger("reportbot.adapters.xenforo")


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ReportApiError) and exc.retryable


def _reports_from_api(data: Any) -> Tuple[List[WireReport], List[int]] | None:
    """Parse the reports list from a response body; None if the shape is wrong.

    Returns the valid reports and the ids of records that failed validation
    but still carried an integer report_id.
    """
    reports = data.get("reports") if isinstance(data, dict) else None
    if not isinstance(reports, list):
        return None
    out = []
    invalid_ids = []
    for item in reports:
        try:
            out.append(WireReport.model_validate(item))
        except ValidationError as e:
            report_id = item.get("report_id") if isinstance(item, dict) else None
            LOG.warning("Skipping invalid report %s in API response: %s", report_id, e)
            if isinstance(report_id, int) and not isinstance(report_id, bool):
                invalid_ids.append(report_id)
    return out, invalid_ids


class XenForoReportClient(ReportSource):
    """Reads open moderation reports from a XenForo forum.

    Failures never propagate: 404 means no reports, network errors and
    5xx are retried with linear backoff (retry_delay * attempt seconds),
    anything else gives up at once. Every failure ends in an empty list.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api_url = api_url
        self._max_retries = max(1, max_retries)
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers["XF-Api-Key"] = api_key
        self._session.headers["Accept"] = "application/json"

    @property
    def api_url(self) -> str:
        return self._api_url

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_incrementing(start=self._retry_delay, increment=self._retry_delay),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=before_sleep_log(LOG, logging.WARNING),
            reraise=True,
        )

    def fetch(self) -> FetchResult:
        attempts = 0
        try:
            for attempt in self._retrying():
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    result = self._request_reports()
        except ReportApiError as e:
            LOG.error(
                "Report API request to %s failed (attempt %s/%s): %s",
                self._api_url,
                attempts,
                self._max_retries,
                e,
            )
            if e.retryable:
                LOG.error("All report API retry attempts exhausted")
            return FetchResult(FetchOutcome.FAILED, attempts=attempts)
        result.attempts = attempts
        return result

    def _request_reports(self) -> FetchResult:
        """One GET attempt. Raises ReportApiError for failures worth classifying."""
        try:
            resp = self._session.get(self._api_url, timeout=self._timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise ReportApiError(f"network error: {e}") from e
        except requests.RequestException as e:
            raise ReportApiError(f"request error: {e}", retryable=False) from e

        if resp.status_code == 404:
            LOG.debug("Report API returned 404, no open reports")
            return FetchResult(FetchOutcome.NO_REPORTS)
        if not 200 <= resp.status_code < 300:
            raise ReportApiError(_error_message(resp), status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            LOG.warning("Report API response from %s is not JSON: %s", self._api_url, e)
            return FetchResult(FetchOutcome.MALFORMED)
        parsed = _reports_from_api(data)
        if parsed is None:
            LOG.warning("Report API response from %s did not contain a reports list", self._api_url)
            return FetchResult(FetchOutcome.MALFORMED)
        reports, invalid_ids = parsed
        return FetchResult(FetchOutcome.OK, reports, invalid_ids=invalid_ids)


def _error_message(resp: requests.Response) -> str:
    msg = resp.reason or str(resp.status_code)
    try:
        body: Dict[str, Any] = resp.json()
    except ValueError:
        body = {}
    errors = body.get("errors") if isinstance(body, dict) else None
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        msg = errors[0].get("message", msg)
    return f"{resp.status_code}: {msg}"
