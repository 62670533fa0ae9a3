#!/usr/bin/env python3
"""
Fleet State Persistence Tests
Tests loading, anchor fallback and atomic replacement of version.json.
"""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))

from boss.state import FleetState, StateError, StateStore


class TestStateStore(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "version.json"

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, data):
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def test_load_full_state(self):
        print("\n🧪 Testing State Loading...")

        self.write({
            "bossVersion": "1.4.2",
            "previousVersion": "1.4.1",
            "bumpType": "patch",
            "bumpReason": "auth (Tier 1) label: \"bugfix\"",
            "lastUpdated": "2026-10-01T09:00:00Z",
            "lastAggregatedAt": "2026-10-01T09:05:00Z",
            "services": {"auth": "v2.3.1"},
        })
        state = StateStore(self.path).load()

        self.assertEqual(state.version, (1, 4, 2))
        self.assertEqual(state.bump_type, "patch")
        self.assertEqual(state.services["auth"], "v2.3.1")
        self.assertEqual(state.anchor.isoformat(), "2026-10-01T09:05:00+00:00")

        print("✅ State loading works")

    def test_anchor_falls_back_to_last_updated(self):
        print("\n🧪 Testing Anchor Migration Fallback...")

        self.write({"bossVersion": "1.0.0", "lastUpdated": "2026-09-30T12:00:00Z", "services": {}})
        store = StateStore(self.path)
        self.assertEqual(store.current_anchor().isoformat(), "2026-09-30T12:00:00+00:00")

        self.write({"bossVersion": "1.0.0"})
        self.assertIsNone(StateStore(self.path).current_anchor())

        print("✅ Anchor falls back to lastUpdated")

    def test_missing_and_invalid_state_is_fatal(self):
        print("\n🧪 Testing Fatal State Errors...")

        with self.assertRaises(StateError):
            StateStore(self.path).load()

        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(StateError):
            StateStore(self.path).load()

        self.path.write_bytes(b"\xff\xfe\x00{\"bossVersion\"}")
        with self.assertRaises(StateError):
            StateStore(self.path).load()

        self.write({"bossVersion": "v1.2"})
        with self.assertRaises(StateError):
            StateStore(self.path).load()

        self.write({"bossVersion": "1.2.0", "bumpType": "huge"})
        with self.assertRaises(StateError):
            StateStore(self.path).load()

        print("✅ Missing or invalid state raises StateError")

    def test_save_replaces_whole_file(self):
        print("\n🧪 Testing Atomic Save...")

        self.write({"bossVersion": "1.0.0", "services": {"old": "v0.1.0"}})
        store = StateStore(self.path)
        state = FleetState.model_validate({
            "bossVersion": "1.1.0",
            "previousVersion": "1.0.0",
            "bumpType": "minor",
            "bumpReason": "catalog (Tier 2) label: \"feature\"",
            "lastUpdated": "2026-10-18T10:00:00Z",
            "lastAggregatedAt": "2026-10-18T10:00:00Z",
            "services": {"catalog": "v3.0.0"},
        })
        store.save(state)

        written = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(written["bossVersion"], "1.1.0")
        self.assertEqual(written["lastAggregatedAt"], "2026-10-18T10:00:00Z")
        self.assertEqual(written["services"], {"catalog": "v3.0.0"})
        self.assertEqual(sorted(os.listdir(self.tmp.name)), ["version.json"])

        print("✅ Save replaces the file")

    def test_failed_save_leaves_previous_file(self):
        print("\n🧪 Testing Failed Save Leaves Old State...")

        self.write({"bossVersion": "1.0.0"})
        before = self.path.read_text(encoding="utf-8")
        state = FleetState(boss_version="2.0.0", bump_type="major")

        with patch("boss.state.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                StateStore(self.path).save(state)

        self.assertEqual(self.path.read_text(encoding="utf-8"), before)
        self.assertEqual(sorted(os.listdir(self.tmp.name)), ["version.json"])

        print("✅ Previous state intact after failed save")


def run_state_tests():
    """Run state store tests."""
    print("🚀 Starting Fleet State Testing")
    print("=" * 55)

    loader = unittest.TestLoader()
    suite = loader.loadTestsFromTestCase(TestStateStore)

    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(suite)

    print("\n" + "=" * 55)
    print("🏁 State Store Testing Summary")
    print("-" * 40)
    print(f"Tests run: {result.testsRun}")
    print(f"Failures: {len(result.failures)}")
    print(f"Errors: {len(result.errors)}")

    if result.wasSuccessful():
        print("\n🎉 All state store tests passed!")
        return 0
    else:
        print("\n⚠️  Some state store tests failed")
        return 1


if __name__ == '__main__':
    sys.exit(run_state_tests())
