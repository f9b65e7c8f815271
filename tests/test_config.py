from __future__ import annotations

import os
from pathlib import Path
import tempfile
import unittest

from cs2_shocker.config import ConfigValidationError, ShockConfig, load_config, validate_shock_config

SETTINGS = """
[runtime]
events_file = "runtime/events/shocker_events.jsonl"
status_file = "runtime/status.json"

[server]
host = "127.0.0.1"
port = 3001
path = "gsi"

[shock]
mode = "LastHitPercentage"
min_intensity = 10
max_intensity = 80
min_duration = 1
max_duration = 5
beep_on_match_start = true

[pishock]
username = "someone"
code = "ABCDEF123"
apikey = "0000-1111-2222"
dry_run = true
""".strip()


class ConfigTests(unittest.TestCase):
    def _write_config(self, root: Path, body: str = SETTINGS) -> Path:
        config_dir = root / "config"
        config_dir.mkdir(parents=True, exist_ok=True)
        cfg_path = config_dir / "settings.toml"
        cfg_path.write_text(body + "\n", encoding="utf-8")
        return cfg_path

    def test_load_and_normalize(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-config-") as td:
            root = Path(td)
            cfg = load_config(self._write_config(root))
            self.assertEqual(cfg.project_root, root.resolve())
            self.assertEqual(cfg.server.port, 3001)
            self.assertEqual(cfg.server.path, "/gsi")
            self.assertEqual(cfg.shock.mode, "last_hit_percentage")
            self.assertTrue(cfg.shock.beep_on_match_start)
            self.assertFalse(cfg.shock.beep_on_round_start)
            self.assertTrue(cfg.shock.beep_on_startup)
            self.assertTrue(cfg.pishock.dry_run)
            self.assertEqual(cfg.pishock.name, "CS2 Shocker")
            self.assertEqual(cfg.runtime.recent_events, 50)

            status = cfg.resolve(cfg.runtime.status_file)
            self.assertTrue(status.is_relative_to(root.resolve()))
            home = cfg.resolve("$HOME/elsewhere.json")
            self.assertTrue(str(home).startswith(str(Path(os.environ["HOME"]))))

    def test_masked_secrets(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-config-") as td:
            cfg = load_config(self._write_config(Path(td)))
            masked = cfg.to_dict()["pishock"]
            self.assertEqual(masked["apikey"], "00**********22")
            self.assertNotIn("ABCDEF123", str(cfg.to_dict()))

    def test_defaults_when_sections_missing(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-config-") as td:
            cfg = load_config(self._write_config(Path(td), body=""))
            self.assertEqual(cfg.server.port, 3000)
            self.assertEqual(cfg.server.path, "/data")
            self.assertEqual(cfg.shock.mode, "random")
            self.assertFalse(cfg.pishock.dry_run)

    def test_out_of_range_rejected(self) -> None:
        body = SETTINGS.replace("max_intensity = 80", "max_intensity = 180").replace("min_duration = 1", "min_duration = 9")
        with tempfile.TemporaryDirectory(prefix="cs2shocker-config-") as td:
            with self.assertRaises(ConfigValidationError) as ctx:
                load_config(self._write_config(Path(td), body=body))
        self.assertIn("shock.max_intensity_out_of_range:180", ctx.exception.errors)
        self.assertIn("shock.min_duration_above_max", ctx.exception.errors)

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory(prefix="cs2shocker-config-") as td:
            with self.assertRaises(FileNotFoundError):
                load_config(Path(td) / "nope.toml")

    def test_validate_shock_config(self) -> None:
        ok = ShockConfig(mode="random", min_intensity=0, max_intensity=100, min_duration=0, max_duration=15)
        self.assertEqual(validate_shock_config(ok), [])
        bad = ShockConfig(mode="gentle", min_intensity=50, max_intensity=10, min_duration=0, max_duration=16)
        errors = validate_shock_config(bad)
        self.assertIn("shock.mode_unknown:gentle", errors)
        self.assertIn("shock.min_intensity_above_max", errors)
        self.assertIn("shock.max_duration_out_of_range:16", errors)


if __name__ == "__main__":
    unittest.main()
