"""Known reports stored as one JSON document keyed by report id.

Layout: {"<report_id>": {<Report fields>}, ...}. Mutations go to the
in-memory document and are readable at once; flush() writes the document
to disk (temp file + rename, so a crash never leaves a half-written file).
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable

from pydantic import ValidationError

from reportbot.models import Report, Reports

LOG = logging.getLogger("reportbot.store.report_store")


def _key(report_id: int | str) -> str:
    return str(report_id)


class ReportRepository:
    """Durable map report_id -> Report with batch-then-flush writes."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._data: Dict[str, Dict[str, Any]] = self._load()
        self._dirty = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        """True when there are mutations not yet flushed."""
        return self._dirty

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, report_id: object) -> bool:
        return isinstance(report_id, (int, str)) and _key(report_id) in self._data

    def _load(self) -> Dict[str, Dict[str, Any]]:
        """Read the document. Missing, unreadable or invalid file gives an empty store."""
        if not self._path.is_file():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as e:
            LOG.warning("Failed to load report store %s: %s", self._path, e)
            return {}
        if not isinstance(raw, dict):
            LOG.warning("Report store %s is not a JSON object, starting empty", self._path)
            return {}
        data = {}
        for key, value in raw.items():
            try:
                report = Report.model_validate(value)
            except ValidationError as e:
                LOG.warning("Dropping invalid stored report %s: %s", key, e)
                continue
            data[_key(report.report_id)] = report.model_dump(mode="json")
        LOG.debug("Loaded %s reports from %s", len(data), self._path)
        return data

    def get(self, report_id: int | str) -> Report | None:
        """Stored report, or None if never stored or deleted."""
        value = self._data.get(_key(report_id))
        if value is None:
            return None
        return Report.model_validate(value)

    def get_all(self) -> Reports:
        """Snapshot of every stored report keyed by str(report_id)."""
        return {key: Report.model_validate(value) for key, value in self._data.items()}

    def save(self, report: Report) -> None:
        """Insert or replace the whole record at report.report_id."""
        self._data[_key(report.report_id)] = report.model_dump(mode="json")
        self._dirty = True
        LOG.debug("Saved report %s", report.report_id)

    def update_comments(self, report: Report) -> bool:
        """Replace only the comment thread and latest comment of a stored report.

        Returns False (and creates nothing) if the report is not stored.
        """
        stored = self._data.get(_key(report.report_id))
        if stored is None:
            LOG.warning("Cannot update comments: report %s not found", report.report_id)
            return False
        payload = report.model_dump(mode="json", include={"report_comment", "latest_report_comment"})
        stored["report_comment"] = payload["report_comment"]
        stored["latest_report_comment"] = payload["latest_report_comment"]
        self._dirty = True
        LOG.debug("Updated comments of report %s", report.report_id)
        return True

    def remove(self, report_id: int | str) -> bool:
        """Delete a report. Returns False if it was not stored."""
        if self._data.pop(_key(report_id), None) is None:
            return False
        self._dirty = True
        LOG.debug("Removed report %s", report_id)
        return True

    def remove_stale(self, active_ids: Iterable[int | str]) -> int:
        """Delete every report whose id is not in active_ids and flush.

        Returns the number of deleted reports.
        """
        active = {_key(report_id) for report_id in active_ids}
        stale = [key for key in self._data if key not in active]
        for key in stale:
            del self._data[key]
        if stale:
            self._dirty = True
            LOG.debug("Removed stale reports: %s", ", ".join(stale))
            self.flush()
        return len(stale)

    def flush(self) -> None:
        """Write the document to disk. Creates the parent directory if needed."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        raw = json.dumps(self._data, ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(raw)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._dirty = False
        LOG.debug("Flushed %s reports to %s", len(self._data), self._path)
