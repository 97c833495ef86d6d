"""Abstract base for report sources."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from reportbot.models import WireReport


class ReportApiError(Exception):
    """Raised when a report API call fails.

    status_code is None when no response was received.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self._retryable = retryable

    @property
    def retryable(self) -> bool:
        """Network failures and 5xx are worth another attempt; 4xx are not."""
        if self._retryable is not None:
            return self._retryable
        if self.status_code is None:
            return True
        return 500 <= self.status_code < 600


class FetchOutcome(str, Enum):
    """How a fetch ended."""

    OK = "ok"
    NO_REPORTS = "no_reports"
    MALFORMED = "malformed"
    FAILED = "failed"


@dataclass
class FetchResult:
    """Reports from one fetch plus how the fetch went.

    reports is empty for every outcome except OK. invalid_ids lists records
    the API returned that failed validation; they are still open reports.
    """

    outcome: FetchOutcome
    reports: List[WireReport] = field(default_factory=list)
    attempts: int = 0
    invalid_ids: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when the API answered with a usable result (possibly no reports)."""
        return self.outcome in (FetchOutcome.OK, FetchOutcome.NO_REPORTS)


class ReportSource(ABC):
    """Anything that can list the currently open reports."""

    @abstractmethod
    def fetch(self) -> FetchResult:
        """Fetch the open report collection. Must not raise."""
        ...

    def get_reports(self) -> List[WireReport]:
        """Open reports, or an empty list when there are none or the fetch failed."""
        return self.fetch().reports
