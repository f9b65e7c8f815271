from __future__ import annotations

import argparse
import json
from pathlib import Path
import urllib.request

from .config import ConfigValidationError, load_config
from .events import read_json
from .gamestate import Snapshot
from .models import ActuationCommand
from .pishock import PiShockClient, PiShockError
from .policy import decide
from .service import ShockerService
from .tracker import MatchTracker


def _default_config_path() -> Path:
    here = Path(__file__).resolve()
    return here.parents[2] / "config" / "settings.toml"


def _post_json(url: str, payload: dict[str, object]) -> dict[str, object]:
    data = json.dumps(payload, ensure_ascii=True).encode("utf-8")
    req = urllib.request.Request(url=url, data=data, method="POST", headers={"Content-Type": "application/json"})
    with urllib.request.urlopen(req, timeout=5) as resp:  # noqa: S310
        return json.loads(resp.read().decode("utf-8"))


def _get_json(url: str) -> dict[str, object]:
    with urllib.request.urlopen(url, timeout=5) as resp:  # noqa: S310
        return json.loads(resp.read().decode("utf-8"))


def cmd_run(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    service = ShockerService(cfg, echo=True)
    stop_reason = service.run(
        host=args.host or None,
        port=args.port if args.port >= 0 else None,
        test_beep=not bool(args.no_test_beep),
    )
    print(json.dumps({"stop_reason": stop_reason, "dispatch": service.dispatcher.stats()}, indent=2))
    return 0


def cmd_beep(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    command = ActuationCommand.beep(max(1, int(args.duration)))
    client = PiShockClient(cfg.pishock)
    if cfg.pishock.dry_run:
        print(json.dumps({"ok": True, "dry_run": True, "body": client.build_body(command)}, indent=2))
        return 0
    try:
        status = client.operate(command)
    except PiShockError as exc:
        print(json.dumps({"ok": False, "error": str(exc)}, indent=2))
        return 2
    print(json.dumps({"ok": True, "status": status}, indent=2))
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    try:
        cfg = load_config(args.config)
    except ConfigValidationError as exc:
        print(json.dumps({"ok": False, "errors": exc.errors}, indent=2))
        return 2
    print(json.dumps({"ok": True, "config": cfg.to_dict()}, indent=2))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    path = cfg.resolve(cfg.runtime.status_file)
    if not path.exists():
        print(json.dumps({"status": "missing", "path": str(path)}, indent=2))
        return 1
    print(json.dumps(read_json(path), indent=2))
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    tracker = MatchTracker()
    rows = Path(args.file).read_text(encoding="utf-8").splitlines()
    for lineno, line in enumerate(rows, start=1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            print(json.dumps({"line": lineno, "error": f"invalid_json:{exc.msg}"}))
            continue
        transitions = tracker.apply_snapshot(Snapshot.from_dict(payload))
        out = []
        for transition in transitions:
            command = decide(transition, cfg.shock)
            out.append({
                "transition": transition.to_dict(),
                "command": command.to_dict() if command is not None else None,
            })
        print(json.dumps({"line": lineno, "results": out, "state": tracker.state().to_dict()}))
    return 0


def cmd_control(args: argparse.Namespace) -> int:
    base = f"http://{args.host}:{args.port}"
    if args.control_action == "pause":
        payload = _post_json(f"{base}/control/pause", {"reason": args.reason})
    elif args.control_action == "resume":
        payload = _post_json(f"{base}/control/resume", {})
    elif args.control_action == "reload":
        payload = _post_json(f"{base}/control/reload", {})
    elif args.control_action == "health":
        payload = _get_json(f"{base}/health")
    else:
        raise SystemExit(f"unknown control action {args.control_action}")
    print(json.dumps(payload, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CS2 Shocker: game state integration to PiShock bridge")
    parser.add_argument("--config", default=str(_default_config_path()))
    sub = parser.add_subparsers(dest="command", required=True)

    p_run = sub.add_parser("run", help="Listen for game state snapshots and actuate")
    p_run.add_argument("--host", default="", help="Override server.host")
    p_run.add_argument("--port", type=int, default=-1, help="Override server.port")
    p_run.add_argument("--no-test-beep", action="store_true", help="Skip the startup beep")
    p_run.set_defaults(func=cmd_run)

    p_beep = sub.add_parser("beep", help="Send one beep and wait for the API response")
    p_beep.add_argument("--duration", type=int, default=1)
    p_beep.set_defaults(func=cmd_beep)

    p_check = sub.add_parser("check-config", help="Validate the config file and print it with secrets masked")
    p_check.set_defaults(func=cmd_check_config)

    p_status = sub.add_parser("status", help="Read latest status file")
    p_status.set_defaults(func=cmd_status)

    p_replay = sub.add_parser("replay", help="Replay a JSON-lines file of snapshots without actuating")
    p_replay.add_argument("file")
    p_replay.set_defaults(func=cmd_replay)

    p_control = sub.add_parser("control", help="Send local control commands")
    p_control.add_argument("control_action", choices=["pause", "resume", "reload", "health"])
    p_control.add_argument("--host", default="127.0.0.1")
    p_control.add_argument("--port", type=int, default=3000)
    p_control.add_argument("--reason", default="manual_pause")
    p_control.set_defaults(func=cmd_control)

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    try:
        return int(args.func(args))
    except ConfigValidationError as exc:
        print(json.dumps({"ok": False, "errors": exc.errors}, indent=2))
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
