"""
Report Store Abstraction Layer

Keeps generated health reports keyed by an opaque report id, newest first,
with pluggable backends (in-memory for tests, JSON file for local use).
The archive is capped; saving past the cap evicts the oldest reports.
"""

import json
import logging
import os
import threading
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

MAX_REPORTS = 50


def new_report_id() -> str:
    return f"report_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def report_score(report: dict) -> float | None:
    score = report.get("overall_score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    return score


def _parse_time(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ReportStore(ABC):
    """Abstract base class for report stores."""

    @abstractmethod
    def save(self, report: dict, tags: list[str] | None = None, notes: str = "") -> str:
        """
        Store a report and return its new id.

        Evicts the oldest reports once MAX_REPORTS is exceeded.
        """
        ...

    @abstractmethod
    def get(self, report_id: str) -> dict | None:
        """Return the stored record ({id, created_at, report, tags, notes}) or None."""
        ...

    @abstractmethod
    def list_reports(self, limit: int | None = None) -> list[dict]:
        """Return stored records, newest first."""
        ...

    @abstractmethod
    def delete(self, report_id: str) -> bool:
        """Delete one record. Returns False if the id is unknown."""
        ...

    def count(self) -> int:
        return len(self.list_reports())

    def search(
        self,
        min_score: float | None = None,
        max_score: float | None = None,
        keywords: list[str] | None = None,
        tags: list[str] | None = None,
        start=None,
        end=None,
    ) -> list[dict]:
        """
        Filter records. All given criteria must match.

        Keywords match case-insensitively anywhere in the report or notes;
        tags require at least one shared tag; start/end bound created_at.
        """
        start, end = _parse_time(start), _parse_time(end)
        wanted_tags = set(tags or [])
        results = []

        for record in self.list_reports():
            score = report_score(record["report"])
            if min_score is not None and (score is None or score < min_score):
                continue
            if max_score is not None and (score is None or score > max_score):
                continue

            if keywords:
                haystack = (
                    json.dumps(record["report"], ensure_ascii=False) + " " + record.get("notes", "")
                ).lower()
                if not all(k.lower() in haystack for k in keywords):
                    continue

            if wanted_tags and not wanted_tags & set(record.get("tags", [])):
                continue

            created = _parse_time(record["created_at"])
            if start is not None and created < start:
                continue
            if end is not None and created > end:
                continue

            results.append(record)

        return results

    def stats(self) -> dict:
        records = self.list_reports()
        scores = [s for s in (report_score(r["report"]) for r in records) if s is not None]
        return {
            "count": len(records),
            "average_score": round(sum(scores) / len(scores), 1) if scores else None,
            "latest": records[0]["created_at"] if records else None,
            "oldest": records[-1]["created_at"] if records else None,
        }

    def export_json(self) -> str:
        return json.dumps(
            {"version": 1, "reports": self.list_reports()},
            ensure_ascii=False,
            indent=2,
        )

    @abstractmethod
    def import_json(self, data: str) -> int:
        """Import records exported by export_json(). Skips known ids; returns the number added."""
        ...


class InMemoryReportStore(ReportStore):
    """Dict-backed store; insertion order is age order."""

    def __init__(self, max_reports: int = MAX_REPORTS):
        self._records: dict[str, dict] = {}
        self._max_reports = max_reports
        self._lock = threading.RLock()

    def save(self, report: dict, tags: list[str] | None = None, notes: str = "") -> str:
        record = {
            "id": new_report_id(),
            "created_at": datetime.now(timezone.utc).isoformat(),
            "report": report,
            "tags": list(tags or []),
            "notes": notes,
        }
        with self._lock:
            previous = dict(self._records)
            self._records[record["id"]] = record
            self._evict()
            self._commit(previous)
        logger.info("Saved report %s", record["id"])
        return record["id"]

    def get(self, report_id: str) -> dict | None:
        with self._lock:
            return self._records.get(report_id)

    def list_reports(self, limit: int | None = None) -> list[dict]:
        with self._lock:
            records = list(reversed(self._records.values()))
        return records[:limit] if limit is not None else records

    def delete(self, report_id: str) -> bool:
        with self._lock:
            if report_id not in self._records:
                return False
            previous = dict(self._records)
            del self._records[report_id]
            self._commit(previous)
        logger.info("Deleted report %s", report_id)
        return True

    def import_json(self, data: str) -> int:
        payload = json.loads(data)
        incoming = payload.get("reports", []) if isinstance(payload, dict) else payload

        valid = []
        for record in incoming:
            if isinstance(record, dict) and {"id", "created_at", "report"} <= record.keys():
                valid.append(record)
            else:
                logger.warning("Skipping malformed report record during import")
        # oldest first so insertion order stays age order
        valid.sort(key=lambda r: _parse_time(r["created_at"]))

        added = 0
        with self._lock:
            previous = dict(self._records)
            for record in valid:
                if record["id"] in self._records:
                    continue
                self._records[record["id"]] = {
                    "id": record["id"],
                    "created_at": record["created_at"],
                    "report": record["report"],
                    "tags": list(record.get("tags", [])),
                    "notes": record.get("notes", ""),
                }
                added += 1
            self._records = dict(sorted(
                self._records.items(), key=lambda item: _parse_time(item[1]["created_at"]),
            ))
            self._evict()
            self._commit(previous)
        logger.info("Imported %d report(s)", added)
        return added

    def _evict(self):
        while len(self._records) > self._max_reports:
            oldest = next(iter(self._records))
            del self._records[oldest]
            logger.debug("Evicted oldest report %s", oldest)

    def _commit(self, previous: dict[str, dict]):
        # Restore the previous records if the backend write fails
        try:
            self._persist()
        except Exception:
            self._records = previous
            logger.error("Failed to persist reports, changes rolled back")
            raise

    def _persist(self):
        pass


class JsonFileReportStore(InMemoryReportStore):
    """Store persisted to a single JSON file, rewritten on every change."""

    def __init__(self, path: str = "data/reports.json", max_reports: int = MAX_REPORTS):
        super().__init__(max_reports=max_reports)
        self._path = path
        self._load()

    def _load(self):
        if not os.path.exists(self._path):
            return
        try:
            with open(self._path, encoding="utf-8") as f:
                payload = json.load(f)
            for record in payload.get("reports", []):
                self._records[record["id"]] = record
        except (json.JSONDecodeError, KeyError, AttributeError, TypeError) as e:
            logger.warning("Failed to load reports from %s: %s", self._path, e)
            self._records = {}
        logger.info("Loaded %d report(s) from %s", len(self._records), self._path)

    def _persist(self):
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        tmp_path = f"{self._path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(
                {"version": 1, "reports": list(self._records.values())},
                f, ensure_ascii=False,
            )
        os.replace(tmp_path, self._path)


def create_report_store(provider: str | None = None) -> ReportStore:
    """Factory function to create the configured report store backend."""
    provider = provider or os.environ.get("REPORT_STORE_PROVIDER", "json")
    if provider == "memory":
        return InMemoryReportStore()
    elif provider == "json":
        return JsonFileReportStore(os.environ.get("REPORT_STORE_PATH", "data/reports.json"))
    else:
        raise ValueError(
            f"Unknown report store provider: {provider!r}. "
            "Supported: 'memory', 'json'"
        )
