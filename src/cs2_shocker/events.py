from __future__ import annotations

from collections import deque
import json
from pathlib import Path
import sys
import threading
from typing import Any, TextIO

from .models import utc_now_iso


def write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")
    tmp.replace(path)


def read_json(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except Exception:  # noqa: BLE001
        return {}
    if not isinstance(payload, dict):
        return {}
    return payload


class EventLog:
    """Append-only JSON-lines event log shared by the service and the dispatcher worker."""

    def __init__(
        self,
        path: Path | None,
        *,
        keep_recent: int = 50,
        echo: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self.path = path
        self.echo = bool(echo)
        self._stream = stream
        self._lock = threading.Lock()
        self._recent: deque[dict[str, Any]] = deque(maxlen=max(1, int(keep_recent)))
        self._write_errors = 0
        self._last_write_error = ""
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(
        self,
        *,
        phase: str,
        event_type: str,
        severity: str = "info",
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        row = {
            "ts": utc_now_iso(),
            "phase": phase,
            "event_type": event_type,
            "severity": severity,
            "payload": dict(payload or {}),
        }
        line = json.dumps(row, ensure_ascii=True)
        with self._lock:
            self._recent.append(row)
            if self.path is not None:
                try:
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                    with self.path.open("a", encoding="utf-8") as fh:
                        fh.write(line + "\n")
                except OSError as exc:
                    # the row stays in recent() even when the file write fails
                    self._write_errors += 1
                    self._last_write_error = f"{type(exc).__name__}:{exc}"
                    sys.stderr.write(f"event_log_write_failed path={self.path} error={self._last_write_error}\n")
            if self.echo:
                stream = self._stream or sys.stdout
                stream.write(line + "\n")
                stream.flush()
        return row

    def write_errors(self) -> dict[str, Any]:
        with self._lock:
            return {"count": self._write_errors, "last_error": self._last_write_error}

    def recent(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._recent)
