"""Append-only JSON-lines journal of raw webhook payloads, one file per call."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from urllib.parse import quote

from callrelay.utils.logging import get_logger

log = get_logger(__name__)


class EventJournal:
    def __init__(self, log_dir: Path) -> None:
        self._log_dir = log_dir

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def path_for(self, call_id: str) -> Path:
        # Call ids come straight from webhooks; keep them inside log_dir
        return self._log_dir / f"{quote(call_id, safe='')}.log"

    def write(self, call_id: str, event: Any) -> bool:
        """Append one event as a JSON line. Returns False if the write failed.

        Failures are logged and swallowed: the in-memory log stays the
        source of truth for live delivery.
        """
        path = self.path_for(call_id)
        try:
            line = json.dumps(event, ensure_ascii=False, default=str)
            self._log_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except (OSError, TypeError, ValueError) as e:
            log.warning("journal_write_failed", call_id=call_id, path=str(path), error=str(e))
            return False
        return True
