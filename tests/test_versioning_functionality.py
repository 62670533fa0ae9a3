#!/usr/bin/env python3
"""
Version Parsing and Arithmetic Tests
Tests release tag parsing, version delta classification and fleet version bumps.
"""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from boss.versioning import (
    BumpLevel,
    SemVer,
    apply_bump,
    classify_version_delta,
    format_version,
    parse_version_tag,
)


class TestVersioning(unittest.TestCase):
    """Test version primitives."""

    def test_tag_parsing(self):
        """Test tag parsing with prefixes and suffixes."""
        print("\n🧪 Testing Tag Parsing...")

        self.assertEqual(parse_version_tag("1.2.3"), (1, 2, 3))
        self.assertEqual(parse_version_tag("v1.2.3"), (1, 2, 3))
        self.assertEqual(parse_version_tag("release-10.0.7"), (10, 0, 7))
        self.assertEqual(parse_version_tag("v2.0.0-rc.1"), (2, 0, 0))
        self.assertEqual(parse_version_tag("1.4.2+build.99"), (1, 4, 2))

        self.assertIsNone(parse_version_tag("v1.2"))
        self.assertIsNone(parse_version_tag("latest"))
        self.assertIsNone(parse_version_tag(""))
        self.assertIsNone(parse_version_tag(None))
        self.assertIsNone(parse_version_tag("no-release"))

        print("✅ Tag parsing works")

    def test_semver_keeps_original(self):
        """Test SemVer object keeps the original tag."""
        print("\n🧪 Testing SemVer Container...")

        v = SemVer.parse("v3.1.4-beta")
        self.assertIsNotNone(v)
        self.assertEqual(v.triple, (3, 1, 4))
        self.assertEqual(v.original, "v3.1.4-beta")

        print("✅ SemVer container works")

    def test_version_delta_levels(self):
        """Test each bump level from a version delta."""
        print("\n🧪 Testing Version Delta Classification...")

        self.assertEqual(classify_version_delta("v1.2.3", "v2.0.0"), BumpLevel.MAJOR)
        self.assertEqual(classify_version_delta("v1.2.3", "v1.3.0"), BumpLevel.MINOR)
        self.assertEqual(classify_version_delta("v1.2.3", "v1.2.4"), BumpLevel.PATCH)
        self.assertEqual(classify_version_delta("v1.2.3", "v1.2.3"), BumpLevel.NONE)
        self.assertEqual(classify_version_delta("v1.2.3", "v1.2.3-rc.2"), BumpLevel.NONE)

        print("✅ Version delta classification works")

    def test_version_delta_prefers_highest_component(self):
        """Test the highest-order differing component decides."""
        print("\n🧪 Testing Highest-Order Component Preference...")

        self.assertEqual(classify_version_delta("1.2.3", "2.0.0"), BumpLevel.MAJOR)
        self.assertEqual(classify_version_delta("1.9.9", "1.10.0"), BumpLevel.MINOR)
        self.assertEqual(classify_version_delta("v2.0.0", "v1.5.0"), BumpLevel.NONE)

        print("✅ Highest-order component wins")

    def test_version_delta_degrades_to_none(self):
        """Test absent and malformed tags never raise."""
        print("\n🧪 Testing Delta With Missing Tags...")

        self.assertEqual(classify_version_delta(None, "v1.0.0"), BumpLevel.NONE)
        self.assertEqual(classify_version_delta("v1.0.0", None), BumpLevel.NONE)
        self.assertEqual(classify_version_delta("fetch-error", "v1.0.0"), BumpLevel.NONE)
        self.assertEqual(classify_version_delta("v1.0.0", "garbage"), BumpLevel.NONE)

        print("✅ Missing tags degrade to NONE")

    def test_bump_ordering(self):
        """Test bump levels are totally ordered."""
        print("\n🧪 Testing Bump Ordering...")

        self.assertLess(BumpLevel.NONE, BumpLevel.PATCH)
        self.assertLess(BumpLevel.PATCH, BumpLevel.MINOR)
        self.assertLess(BumpLevel.MINOR, BumpLevel.MAJOR)
        self.assertEqual(max(BumpLevel.PATCH, BumpLevel.MINOR), BumpLevel.MINOR)
        self.assertEqual(BumpLevel.from_label("Minor"), BumpLevel.MINOR)
        self.assertEqual(BumpLevel.MAJOR.label, "major")
        with self.assertRaises(ValueError):
            BumpLevel.from_label("huge")

        print("✅ Bump ordering works")

    def test_version_arithmetic(self):
        """Test applying bumps resets lower components."""
        print("\n🧪 Testing Version Arithmetic...")

        v = apply_bump((1, 4, 2), BumpLevel.MAJOR)
        self.assertEqual(v, (2, 0, 0))
        v = apply_bump(v, BumpLevel.MINOR)
        self.assertEqual(v, (2, 1, 0))
        v = apply_bump(v, BumpLevel.PATCH)
        self.assertEqual(v, (2, 1, 1))
        self.assertEqual(apply_bump((2, 1, 1), BumpLevel.NONE), (2, 1, 1))
        self.assertEqual(apply_bump((1, 4, 2), BumpLevel.MINOR), (1, 5, 0))
        self.assertEqual(format_version((2, 1, 1)), "2.1.1")

        print("✅ Version arithmetic works")


def run_versioning_tests():
    """Run versioning tests."""
    print("🚀 Starting Version Primitive Testing")
    print("=" * 55)

    loader = unittest.TestLoader()
    suite = loader.loadTestsFromTestCase(TestVersioning)

    runner = unittest.TextTestRunner(verbosity=2, stream=sys.stdout)
    result = runner.run(suite)

    print("\n" + "=" * 55)
    print("🏁 Versioning Testing Summary")
    print("-" * 40)
    print(f"Tests run: {result.testsRun}")
    print(f"Failures: {len(result.failures)}")
    print(f"Errors: {len(result.errors)}")

    if result.wasSuccessful():
        print("\n🎉 All versioning tests passed!")
        return 0
    else:
        print("\n⚠️  Some versioning tests failed")
        return 1


if __name__ == '__main__':
    sys.exit(run_versioning_tests())
