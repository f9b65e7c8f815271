from __future__ import annotations

import random
import threading
import time
from typing import Any, Protocol

from .api import ControlBridge, start_api_server
from .config import AppConfig, ConfigValidationError, load_config
from .events import EventLog, write_json_atomic
from .gamestate import Snapshot
from .models import ActuationCommand, MatchStarted, Transition, utc_now_iso
from .pishock import ActuationDispatcher, PiShockClient
from .policy import decide
from .tracker import MatchTracker

STARTUP_BEEP_SECONDS = 1


class Dispatcher(Protocol):
    def submit(self, command: ActuationCommand, *, reason: str = "") -> None: ...

    def stats(self) -> dict[str, Any]: ...

    def close(self, *, wait: bool = True) -> None: ...


class ShockerService:
    def __init__(
        self,
        cfg: AppConfig,
        *,
        dispatcher: Dispatcher | None = None,
        event_log: EventLog | None = None,
        rng: random.Random | None = None,
        echo: bool = False,
    ) -> None:
        self._cfg = cfg
        self._cfg_lock = threading.Lock()
        self.status_file = cfg.resolve(cfg.runtime.status_file)
        self.event_log = event_log or EventLog(
            cfg.resolve(cfg.runtime.events_file),
            keep_recent=cfg.runtime.recent_events,
            echo=echo,
        )
        self.dispatcher: Dispatcher = dispatcher or ActuationDispatcher(
            PiShockClient(cfg.pishock),
            event_log=self.event_log,
        )
        self.tracker = MatchTracker()
        self.bridge = ControlBridge()
        self._rng = rng
        # orders detect -> enqueue across request threads; never held while a command is sent
        self._pipeline_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._started_at = ""
        self._state = "IDLE"
        self._api_server = None
        self._api_thread = None

    @property
    def cfg(self) -> AppConfig:
        with self._cfg_lock:
            return self._cfg

    def process_snapshot(self, payload: dict[str, Any]) -> list[Transition]:
        snapshot = Snapshot.from_dict(payload)
        with self._pipeline_lock:
            had_player = self.tracker.state().player is not None
            transitions = self.tracker.apply_snapshot(snapshot)
            for transition in transitions:
                self._handle_transition(transition)
            state = self.tracker.state()
            reset = any(isinstance(t, MatchStarted) for t in transitions)
            if state.player is not None and (reset or not had_player):
                self.event_log.append(
                    phase="match",
                    event_type="player_initialized",
                    payload={"steam_id": state.steam_id, "player": state.player.to_dict()},
                )

        if transitions:
            self.write_status()
        return transitions

    def _handle_transition(self, transition: Transition) -> None:
        command = decide(transition, self.cfg.shock, rng=self._rng)
        paused = self.bridge.is_paused()
        # enqueue before any file I/O
        if command is not None and not paused:
            self.dispatcher.submit(command, reason=transition.kind)
        self.event_log.append(
            phase="match",
            event_type=transition.kind,
            payload={
                "transition": transition.to_dict(),
                "command": command.to_dict() if command is not None else None,
            },
        )
        if command is not None and paused:
            self.event_log.append(
                phase="dispatch",
                event_type="suppressed",
                payload={"command": command.to_dict(), "reason": transition.kind, **self.bridge.snapshot()},
            )

    def startup_beep(self) -> None:
        self.event_log.append(phase="service", event_type="startup_beep", payload={"duration": STARTUP_BEEP_SECONDS})
        self.dispatcher.submit(ActuationCommand.beep(STARTUP_BEEP_SECONDS), reason="startup")

    def pause(self, reason: str) -> None:
        self.bridge.request_pause(reason)
        self.event_log.append(phase="control", event_type="pause", payload=self.bridge.snapshot())
        self.write_status()

    def resume(self) -> None:
        self.bridge.request_resume()
        self.event_log.append(phase="control", event_type="resume", payload={})
        self.write_status()

    def reload_config(self) -> dict[str, Any]:
        path = self.cfg.config_path
        try:
            fresh = load_config(path)
        except (ConfigValidationError, FileNotFoundError, ValueError) as exc:
            self.event_log.append(
                phase="config",
                event_type="reload_rejected",
                severity="error",
                payload={"path": str(path), "error": str(exc)},
            )
            return {"ok": False, "reason": str(exc)}

        with self._cfg_lock:
            self._cfg = fresh
        reconfigure = getattr(self.dispatcher, "reconfigure", None)
        if callable(reconfigure):
            reconfigure(fresh.pishock)
        self.event_log.append(phase="config", event_type="reloaded", payload={"shock": fresh.to_dict()["shock"]})
        self.write_status()
        return {"ok": True, "reason": "ok"}

    def health_payload(self) -> dict[str, Any]:
        cfg = self.cfg
        return {
            "generated_at": utc_now_iso(),
            "state": self._state,
            "started_at": self._started_at,
            **self.bridge.snapshot(),
            "match": self.tracker.state().to_dict(),
            "snapshots_applied": self.tracker.snapshots_applied(),
            "dispatch": self.dispatcher.stats(),
            "event_log_errors": self.event_log.write_errors(),
            "shock": cfg.to_dict()["shock"],
            "recent_events": self.event_log.recent(),
        }

    def write_status(self, *, state: str | None = None) -> None:
        if state is not None:
            self._state = state
        payload = self.health_payload()
        try:
            with self._status_lock:
                write_json_atomic(self.status_file, payload)
        except OSError as exc:
            self.event_log.append(
                phase="service",
                event_type="status_write_failed",
                severity="warning",
                payload={"path": str(self.status_file), "error": f"{type(exc).__name__}:{exc}"},
            )

    def start(self, *, host: str | None = None, port: int | None = None, test_beep: bool = True) -> tuple[str, int]:
        cfg = self.cfg
        bind_host = host or cfg.server.host
        bind_port = cfg.server.port if port is None else int(port)
        self._api_server, self._api_thread = start_api_server(self, host=bind_host, port=bind_port)
        actual_host, actual_port = self._api_server.server_address[:2]
        self._started_at = utc_now_iso()
        self.event_log.append(
            phase="service",
            event_type="started",
            payload={"host": str(actual_host), "port": int(actual_port), "path": cfg.server.path},
        )
        if test_beep and cfg.shock.beep_on_startup:
            self.startup_beep()
        self.write_status(state="RUNNING")
        return str(actual_host), int(actual_port)

    def stop(self, *, note: str = "stopped") -> None:
        if self._api_server is not None:
            try:
                self._api_server.shutdown()
                self._api_server.server_close()
            except OSError:
                pass
            self._api_server = None
        self.dispatcher.close(wait=True)
        self.event_log.append(phase="service", event_type="stopped", payload={"note": note})
        self.write_status(state="STOPPED")

    def run(self, *, host: str | None = None, port: int | None = None, test_beep: bool = True) -> str:
        self.start(host=host, port=port, test_beep=test_beep)
        stop_reason = "unknown"
        try:
            while True:
                time.sleep(0.5)
        except KeyboardInterrupt:
            stop_reason = "keyboard_interrupt"
        finally:
            self.stop(note=stop_reason)
        return stop_reason
