"""Contribution parsing and storage."""

import json
import logging
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from contrakt.models import ContributionRecord
from contrakt.telemetry import telemetry
from contrakt.telemetry_schema import SpanKind, TelemetryKeys

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def _timestamp_identifier(now: Optional[datetime] = None) -> str:
    """Filesystem-safe UTC timestamp with microsecond resolution."""
    moment = now or datetime.now(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-%fZ")


def parse_contribution(text: str) -> ContributionRecord:
    """Parse a structuring reply into a ContributionRecord.

    Accepts bare JSON or JSON wrapped in a markdown fence.

    Raises:
        ValueError: if the text is not a JSON object with the expected fields
            (``json.JSONDecodeError`` and ``pydantic.ValidationError`` are
            both ValueError subclasses).
    """
    payload = (text or "").strip()
    if "```json" in payload:
        payload = payload.split("```json", 1)[1].split("```", 1)[0].strip()
    elif "```" in payload:
        payload = payload.split("```", 1)[1].split("```", 1)[0].strip()

    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError(f"Contribution must be a JSON object, got {type(data).__name__}")
    return ContributionRecord.model_validate(data)


class FileContributionSink:
    """Stores each contribution as ``contribution_<timestamp>.json``.

    Files are created exclusively; an identifier collision gets a numeric
    suffix instead of overwriting the existing record.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.directory = Path(directory)
        self._clock = clock

    def _path_for(self, identifier: str) -> Path:
        if not _IDENTIFIER_RE.match(identifier):
            raise ValueError(f"Invalid contribution identifier: {identifier!r}")
        return self.directory / f"contribution_{identifier}.json"

    def persist(self, record: ContributionRecord) -> str:
        """Write one record and return its identifier."""
        self.directory.mkdir(parents=True, exist_ok=True)
        moment = self._clock()
        base = _timestamp_identifier(moment)
        payload = record.model_dump(mode="json")
        payload["recorded_at"] = moment.isoformat()
        body = json.dumps(payload, indent=2)

        with telemetry.start_span(name="persist_contribution", span_type=SpanKind.SINK) as span:
            identifier = base
            attempt = 0
            while True:
                try:
                    with self._path_for(identifier).open("x", encoding="utf-8") as handle:
                        handle.write(body)
                    break
                except FileExistsError:
                    attempt += 1
                    identifier = f"{base}-{attempt}"
            span.set_attribute(TelemetryKeys.RECORD_ID, identifier)

        logger.info("Stored contribution %s (%s)", identifier, record.type)
        return identifier

    def load(self, identifier: str) -> Optional[ContributionRecord]:
        """Read a stored record back, or None if it does not exist."""
        path = self._path_for(identifier)
        if not path.exists():
            return None
        return ContributionRecord.model_validate(json.loads(path.read_text(encoding="utf-8")))


class InMemoryContributionSink:
    """Process-local sink, for tests and local runs."""

    def __init__(self):
        self._records: Dict[str, ContributionRecord] = {}
        self._lock = threading.Lock()

    def persist(self, record: ContributionRecord) -> str:
        with self._lock:
            base = _timestamp_identifier()
            identifier = base
            attempt = 0
            while identifier in self._records:
                attempt += 1
                identifier = f"{base}-{attempt}"
            self._records[identifier] = record
        return identifier

    def load(self, identifier: str) -> Optional[ContributionRecord]:
        with self._lock:
            return self._records.get(identifier)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
