from __future__ import annotations

import contextlib
import io
import json
from pathlib import Path
import tempfile
import unittest

from cs2_shocker.cli import build_parser

SETTINGS = """
[shock]
mode = "last_hit_percentage"
max_intensity = 40
max_duration = 4
beep_on_match_start = true

[pishock]
username = "someone"
code = "CODE1"
apikey = "KEY1"
dry_run = true
""".strip()


def _run(argv: list[str]) -> tuple[int, str]:
    args = build_parser().parse_args(argv)
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        code = int(args.func(args))
    return code, out.getvalue()


class CliTests(unittest.TestCase):
    def _write_config(self, root: Path, body: str = SETTINGS) -> Path:
        config_dir = root / "config"
        config_dir.mkdir(parents=True, exist_ok=True)
        cfg_path = config_dir / "settings.toml"
        cfg_path.write_text(body + "\n", encoding="utf-8")
        return cfg_path

    def test_replay_prints_transitions_per_line(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-cli-") as td:
            root = Path(td)
            cfg_path = self._write_config(root)
            player = {"steamid": "S1", "state": {"health": 100}, "match_stats": {"deaths": 0}}
            dead = {"steamid": "S1", "state": {"health": 0}, "match_stats": {"deaths": 1}}
            lines = [
                json.dumps({"provider": {"steamid": "S1"}, "map": {"phase": "live"}, "player": player}),
                "",
                "not json",
                json.dumps({"player": dead}),
            ]
            replay = root / "snapshots.jsonl"
            replay.write_text("\n".join(lines) + "\n", encoding="utf-8")

            code, output = _run(["--config", str(cfg_path), "replay", str(replay)])
            self.assertEqual(code, 0)
            rows = [json.loads(line) for line in output.splitlines()]
            self.assertEqual([row["line"] for row in rows], [1, 3, 4])
            self.assertEqual(rows[0]["results"], [])
            self.assertTrue(rows[1]["error"].startswith("invalid_json"))
            self.assertEqual(
                rows[2]["results"],
                [
                    {
                        "transition": {"kind": "death", "health_at_death": 100},
                        "command": {"op": "shock", "duration": 4, "intensity": 40},
                    }
                ],
            )
            self.assertEqual(rows[2]["state"]["player"]["deaths"], 1)

    def test_check_config_masks_secrets_and_reports_errors(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-cli-") as td:
            root = Path(td)
            code, output = _run(["--config", str(self._write_config(root)), "check-config"])
            self.assertEqual(code, 0)
            payload = json.loads(output)
            self.assertEqual(payload["config"]["pishock"]["apikey"], "****")
            self.assertNotIn("KEY1", output)

            bad = self._write_config(root, SETTINGS.replace("max_duration = 4", "max_duration = 20"))
            code, output = _run(["--config", str(bad), "check-config"])
            self.assertEqual(code, 2)
            self.assertIn("shock.max_duration_out_of_range:20", json.loads(output)["errors"])

    def test_status_missing(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-cli-") as td:
            code, output = _run(["--config", str(self._write_config(Path(td))), "status"])
            self.assertEqual(code, 1)
            self.assertEqual(json.loads(output)["status"], "missing")

    def test_beep_dry_run_prints_body(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-cli-") as td:
            cfg_path = self._write_config(Path(td))
            code, output = _run(["--config", str(cfg_path), "beep", "--duration", "3"])
            self.assertEqual(code, 0)
            body = json.loads(output)["body"]
            self.assertEqual((body["Op"], body["Duration"], body["Username"]), (2, 3, "someone"))


if __name__ == "__main__":
    unittest.main()
