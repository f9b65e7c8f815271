from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import tomllib
from typing import Any

SHOCK_MODES = ("random", "last_hit_percentage")
MAX_INTENSITY = 100
MAX_DURATION = 15
PISHOCK_API_URL = "https://do.pishock.com/api/apioperate"


class ConfigValidationError(ValueError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("invalid config: " + ", ".join(self.errors))


@dataclass(frozen=True)
class RuntimeConfig:
    events_file: str
    status_file: str
    recent_events: int


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int
    path: str


@dataclass(frozen=True)
class ShockConfig:
    mode: str
    min_intensity: int
    max_intensity: int
    min_duration: int
    max_duration: int
    beep_on_match_start: bool = False
    beep_on_round_start: bool = False
    beep_on_startup: bool = True


@dataclass(frozen=True)
class PiShockConfig:
    username: str
    code: str
    apikey: str
    name: str = "CS2 Shocker"
    api_url: str = PISHOCK_API_URL
    request_timeout_seconds: float = 5.0
    dry_run: bool = False

    def masked(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "code": _mask(self.code),
            "apikey": _mask(self.apikey),
            "name": self.name,
            "api_url": self.api_url,
            "request_timeout_seconds": self.request_timeout_seconds,
            "dry_run": self.dry_run,
        }


@dataclass(frozen=True)
class AppConfig:
    project_root: Path
    config_path: Path
    runtime: RuntimeConfig
    server: ServerConfig
    shock: ShockConfig
    pishock: PiShockConfig

    def resolve(self, rel_or_abs: str) -> Path:
        expanded = os.path.expandvars(str(rel_or_abs))
        path = Path(expanded).expanduser()
        if path.is_absolute():
            return path
        return (self.project_root / path).resolve()

    def to_dict(self) -> dict[str, Any]:
        return {
            "config_path": str(self.config_path),
            "project_root": str(self.project_root),
            "runtime": {
                "events_file": self.runtime.events_file,
                "status_file": self.runtime.status_file,
                "recent_events": self.runtime.recent_events,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "path": self.server.path,
            },
            "shock": {
                "mode": self.shock.mode,
                "min_intensity": self.shock.min_intensity,
                "max_intensity": self.shock.max_intensity,
                "min_duration": self.shock.min_duration,
                "max_duration": self.shock.max_duration,
                "beep_on_match_start": self.shock.beep_on_match_start,
                "beep_on_round_start": self.shock.beep_on_round_start,
                "beep_on_startup": self.shock.beep_on_startup,
            },
            "pishock": self.pishock.masked(),
        }


def _mask(secret: str) -> str:
    if not secret:
        return ""
    if len(secret) <= 4:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]


def _normalize_mode(raw: object) -> str:
    token = str(raw).strip().lower().replace("-", "_")
    if token in {"lasthitpercentage", "last_hit"}:
        return "last_hit_percentage"
    return token


def _normalize_path(raw: object) -> str:
    token = str(raw).strip() or "/data"
    if not token.startswith("/"):
        token = "/" + token
    return token


def validate_shock_config(cfg: ShockConfig) -> list[str]:
    errors: list[str] = []
    if cfg.mode not in SHOCK_MODES:
        errors.append(f"shock.mode_unknown:{cfg.mode}")
    if not 0 <= cfg.min_intensity <= MAX_INTENSITY:
        errors.append(f"shock.min_intensity_out_of_range:{cfg.min_intensity}")
    if not 0 <= cfg.max_intensity <= MAX_INTENSITY:
        errors.append(f"shock.max_intensity_out_of_range:{cfg.max_intensity}")
    if cfg.min_intensity > cfg.max_intensity:
        errors.append("shock.min_intensity_above_max")
    if not 0 <= cfg.min_duration <= MAX_DURATION:
        errors.append(f"shock.min_duration_out_of_range:{cfg.min_duration}")
    if not 0 <= cfg.max_duration <= MAX_DURATION:
        errors.append(f"shock.max_duration_out_of_range:{cfg.max_duration}")
    if cfg.min_duration > cfg.max_duration:
        errors.append("shock.min_duration_above_max")
    return errors


def _detect_project_root(cfg_path: Path) -> Path:
    direct_parent = cfg_path.parent
    if direct_parent.name == "config":
        return direct_parent.parent.resolve()

    for candidate in [direct_parent, *direct_parent.parents]:
        if (candidate / "src" / "cs2_shocker").exists():
            return candidate.resolve()
    return direct_parent.resolve()


def load_config(path: str | Path) -> AppConfig:
    cfg_path = Path(path).expanduser().resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("rb") as fh:
        payload = tomllib.load(fh)

    runtime = payload.get("runtime", {})
    server = payload.get("server", {})
    shock = payload.get("shock", {})
    pishock = payload.get("pishock", {})

    shock_cfg = ShockConfig(
        mode=_normalize_mode(shock.get("mode", "random")),
        min_intensity=int(shock.get("min_intensity", 1)),
        max_intensity=int(shock.get("max_intensity", 25)),
        min_duration=int(shock.get("min_duration", 1)),
        max_duration=int(shock.get("max_duration", 1)),
        beep_on_match_start=bool(shock.get("beep_on_match_start", False)),
        beep_on_round_start=bool(shock.get("beep_on_round_start", False)),
        beep_on_startup=bool(shock.get("beep_on_startup", True)),
    )
    errors = validate_shock_config(shock_cfg)
    if errors:
        raise ConfigValidationError(errors)

    return AppConfig(
        project_root=_detect_project_root(cfg_path),
        config_path=cfg_path,
        runtime=RuntimeConfig(
            events_file=str(runtime.get("events_file", "runtime/events/shocker_events.jsonl")),
            status_file=str(runtime.get("status_file", "runtime/status.json")),
            recent_events=max(1, int(runtime.get("recent_events", 50))),
        ),
        server=ServerConfig(
            host=str(server.get("host", "127.0.0.1")),
            port=max(0, int(server.get("port", 3000))),
            path=_normalize_path(server.get("path", "/data")),
        ),
        shock=shock_cfg,
        pishock=PiShockConfig(
            username=str(pishock.get("username", "")),
            code=str(pishock.get("code", "")),
            apikey=str(pishock.get("apikey", "")),
            name=str(pishock.get("name", "CS2 Shocker")).strip() or "CS2 Shocker",
            api_url=str(pishock.get("api_url", PISHOCK_API_URL)),
            request_timeout_seconds=max(0.5, float(pishock.get("request_timeout_seconds", 5.0))),
            dry_run=bool(pishock.get("dry_run", False)),
        ),
    )
