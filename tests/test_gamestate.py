from __future__ import annotations

import unittest

from cs2_shocker.gamestate import MapPhase, RoundPhase, Snapshot


class SnapshotDecodeTests(unittest.TestCase):
    def test_full_payload(self) -> None:
        snap = Snapshot.from_dict(
            {
                "provider": {"name": "Counter-Strike 2", "appid": 730, "version": 13987, "steamid": "7656", "timestamp": 1700000000},
                "map": {"mode": "competitive", "name": "de_mirage", "phase": "live"},
                "round": {"phase": "freezetime"},
                "player": {
                    "steamid": "7656",
                    "name": "tester",
                    "state": {
                        "health": 87,
                        "armor": 100,
                        "helmet": True,
                        "flashed": 0,
                        "smoked": 0,
                        "burning": 0,
                        "money": 4250,
                        "round_kills": 1,
                        "round_killhs": 1,
                        "equip_value": 5700,
                    },
                    "match_stats": {"kills": 12, "assists": 3, "deaths": 8, "mvps": 2, "score": 31},
                },
            }
        )
        self.assertEqual(snap.provider.steamid, "7656")
        self.assertEqual(snap.provider.appid, 730)
        self.assertEqual(snap.map_phase, MapPhase.LIVE)
        self.assertEqual(snap.map.name, "de_mirage")
        self.assertEqual(snap.round_phase, RoundPhase.FREEZETIME)
        self.assertEqual(snap.player.health, 87)
        self.assertEqual(snap.player.deaths, 8)
        self.assertEqual(snap.player.kills, 12)
        self.assertTrue(snap.player.helmet)
        self.assertEqual(snap.player.equip_value, 5700)

    def test_absent_and_malformed_parts(self) -> None:
        self.assertEqual(Snapshot.from_dict({}), Snapshot())
        self.assertEqual(Snapshot.from_dict(["not", "a", "dict"]), Snapshot())
        snap = Snapshot.from_dict({"map": "de_dust2", "round": None, "player": {"steamid": "S1"}})
        self.assertEqual(snap, Snapshot())

    def test_provider_without_steamid_decodes_as_empty_identity(self) -> None:
        snap = Snapshot.from_dict({"provider": {"name": "no id"}})
        self.assertIsNotNone(snap.provider)
        self.assertEqual(snap.provider.steamid, "")

    def test_phase_parsing(self) -> None:
        self.assertEqual(Snapshot.from_dict({"map": {"phase": "GameOver"}}).map_phase, MapPhase.GAMEOVER)
        self.assertEqual(Snapshot.from_dict({"map": {"phase": "overtime"}}).map_phase, MapPhase.UNKNOWN)
        self.assertIsNone(Snapshot.from_dict({"map": {"name": "de_nuke"}}).map_phase)
        self.assertEqual(Snapshot.from_dict({"round": {"phase": "over"}}).round_phase, RoundPhase.OVER)
        self.assertIsNone(Snapshot.from_dict({"round": {}}).round_phase)

    def test_player_requires_health_and_deaths(self) -> None:
        base = {"steamid": "S1", "state": {"health": 100}, "match_stats": {"deaths": 0}}
        self.assertIsNotNone(Snapshot.from_dict({"player": base}).player)
        self.assertIsNone(Snapshot.from_dict({"player": {**base, "state": {}}}).player)
        self.assertIsNone(Snapshot.from_dict({"player": {**base, "match_stats": {"kills": 3}}}).player)
        self.assertIsNone(Snapshot.from_dict({"player": {**base, "steamid": ""}}).player)
        self.assertIsNone(Snapshot.from_dict({"player": {"steamid": "S1"}}).player)

    def test_player_defaults_and_clamping(self) -> None:
        snap = Snapshot.from_dict(
            {"player": {"steamid": "S1", "state": {"health": 140}, "match_stats": {"deaths": "2"}}}
        )
        self.assertEqual(snap.player.health, 100)
        self.assertEqual(snap.player.deaths, 2)
        self.assertEqual(snap.player.armor, 0)
        self.assertEqual(snap.player.kills, 0)


if __name__ == "__main__":
    unittest.main()
