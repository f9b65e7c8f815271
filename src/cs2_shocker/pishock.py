from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import json
import threading
from typing import Any, Callable
import urllib.error
import urllib.request

from .config import PiShockConfig
from .events import EventLog
from .models import ActuationCommand, Op

PostJson = Callable[[str, dict[str, Any], float], int]


class PiShockError(RuntimeError):
    pass


def _default_post_json(url: str, payload: dict[str, Any], timeout_s: float) -> int:
    data = json.dumps(payload, ensure_ascii=True).encode("utf-8")
    req = urllib.request.Request(
        url=url,
        data=data,
        method="POST",
        headers={"Content-Type": "application/json", "User-Agent": "CS2Shocker/0.1"},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:  # noqa: S310
            return int(resp.status)
    except urllib.error.HTTPError as exc:
        return int(exc.code)


class PiShockClient:
    def __init__(self, cfg: PiShockConfig, *, post_json: PostJson | None = None) -> None:
        self.cfg = cfg
        self._post_json = post_json or _default_post_json

    def build_body(self, command: ActuationCommand) -> dict[str, Any]:
        body: dict[str, Any] = {
            "Username": self.cfg.username,
            "Name": self.cfg.name,
            "Code": self.cfg.code,
            "Apikey": self.cfg.apikey,
            "Op": int(command.op),
            "Duration": int(command.duration),
        }
        if command.op != Op.BEEP:
            body["Intensity"] = int(command.intensity or 0)
        return body

    def operate(self, command: ActuationCommand) -> int:
        try:
            status = self._post_json(self.cfg.api_url, self.build_body(command), self.cfg.request_timeout_seconds)
        except Exception as exc:  # noqa: BLE001
            raise PiShockError(f"pishock_transport_error:{exc}") from exc
        if not 200 <= status < 300:
            raise PiShockError(f"pishock_http_{status}")
        return status


class ActuationDispatcher:
    """
    Fire-and-forget delivery of actuation commands.

    submit() returns immediately. One worker thread sends commands in submission
    order; every outcome is written to the event log and nowhere else.
    """

    def __init__(
        self,
        client: PiShockClient,
        *,
        event_log: EventLog | None = None,
        dry_run: bool | None = None,
    ) -> None:
        self.client = client
        self.event_log = event_log
        self.dry_run = bool(client.cfg.dry_run if dry_run is None else dry_run)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pishock-dispatch")
        self._lock = threading.Lock()
        self._counters = {"submitted": 0, "sent": 0, "failed": 0, "dry_run": 0}
        self._last_error = ""
        self._closed = False

    def _log(self, event_type: str, severity: str, payload: dict[str, Any]) -> None:
        if self.event_log is not None:
            self.event_log.append(phase="dispatch", event_type=event_type, severity=severity, payload=payload)

    def _bump(self, key: str, *, error: str = "") -> None:
        with self._lock:
            self._counters[key] = int(self._counters.get(key, 0)) + 1
            if error:
                self._last_error = error

    def _deliver(self, command: ActuationCommand, reason: str) -> None:
        payload: dict[str, Any] = {"command": command.to_dict(), "reason": reason}
        if self.dry_run:
            self._bump("dry_run")
            self._log("dry_run", "info", payload)
            return
        try:
            status = self.client.operate(command)
        except PiShockError as exc:
            self._bump("failed", error=str(exc))
            self._log("failed", "warning", {**payload, "error": str(exc)})
            return
        self._bump("sent")
        self._log("sent", "info", {**payload, "status": status})

    def submit(self, command: ActuationCommand, *, reason: str = "") -> None:
        with self._lock:
            if self._closed:
                return
            self._counters["submitted"] += 1
            self._executor.submit(self._deliver, command, reason)

    def reconfigure(self, cfg: PiShockConfig) -> None:
        with self._lock:
            self.client.cfg = cfg
            self.dry_run = bool(cfg.dry_run)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {**self._counters, "last_error": self._last_error, "dry_run_mode": self.dry_run}

    def close(self, *, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
