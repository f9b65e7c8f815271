from __future__ import annotations

from dataclasses import dataclass, field
import json
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import threading
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .service import ShockerService


@dataclass
class ControlBridge:
    _lock: threading.Lock = field(default_factory=threading.Lock)
    paused: bool = False
    pause_reason: str = ""

    def request_pause(self, reason: str) -> None:
        with self._lock:
            self.paused = True
            self.pause_reason = reason.strip() or "manual_pause"

    def request_resume(self) -> None:
        with self._lock:
            self.paused = False
            self.pause_reason = ""

    def is_paused(self) -> bool:
        with self._lock:
            return bool(self.paused)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "paused": bool(self.paused),
                "pause_reason": self.pause_reason,
            }


def _read_json_body(handler: BaseHTTPRequestHandler) -> tuple[bool, dict[str, Any]]:
    length = int(handler.headers.get("Content-Length", "0") or 0)
    if length <= 0:
        return False, {}
    raw = handler.rfile.read(length)
    try:
        data = json.loads(raw.decode("utf-8"))
    except Exception:  # noqa: BLE001
        return False, {}
    if not isinstance(data, dict):
        return False, {}
    return True, data


def _handler_factory(service: "ShockerService"):
    data_path = service.cfg.server.path

    class Handler(BaseHTTPRequestHandler):
        def _send(self, code: int, payload: dict[str, Any]) -> None:
            body = json.dumps(payload, ensure_ascii=True).encode("utf-8")
            self.send_response(code)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def do_GET(self) -> None:  # noqa: N802
            if self.path == "/health":
                self._send(200, service.health_payload())
                return
            self._send(404, {"error": "not_found"})

        def do_POST(self) -> None:  # noqa: N802
            if self.path == data_path:
                ok, payload = _read_json_body(self)
                if not ok:
                    self._send(400, {"error": "invalid_json"})
                    return
                transitions = service.process_snapshot(payload)
                self._send(200, {"ok": True, "transitions": [t.to_dict() for t in transitions]})
                return
            if self.path == "/control/pause":
                _, payload = _read_json_body(self)
                reason = str(payload.get("reason", "manual_pause"))
                service.pause(reason)
                self._send(200, {"ok": True, "action": "pause", "reason": reason})
                return
            if self.path == "/control/resume":
                service.resume()
                self._send(200, {"ok": True, "action": "resume"})
                return
            if self.path == "/control/reload":
                result = service.reload_config()
                self._send(200 if result["ok"] else 409, {"action": "reload", **result})
                return
            self._send(404, {"error": "not_found"})

        def log_message(self, format: str, *args: Any) -> None:
            _ = format
            _ = args
            return

    return Handler


def start_api_server(
    service: "ShockerService",
    *,
    host: str = "127.0.0.1",
    port: int = 3000,
) -> tuple[ThreadingHTTPServer, threading.Thread]:
    server = ThreadingHTTPServer((host, port), _handler_factory(service))
    thread = threading.Thread(target=server.serve_forever, name="gsi-api", daemon=True)
    thread.start()
    return server, thread
