import os
import sys
import unittest

# --- CONFIGURATION ---
TEST_DIR = os.path.dirname(os.path.abspath(__file__))
TEST_PATTERN = "test_*.py"


def build_suite(pattern=TEST_PATTERN):
    """Every test_*.py next to this file. No browser needed: pages are faked."""
    loader = unittest.TestLoader()
    return loader.discover(TEST_DIR, pattern=pattern, top_level_dir=TEST_DIR)


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("🚀 STARTING OFFLINE TEST SUITE")
    print("=" * 60)

    pattern = sys.argv[1] if len(sys.argv) > 1 else TEST_PATTERN
    runner = unittest.TextTestRunner(verbosity=1)
    result = runner.run(build_suite(pattern))

    print("\n" + "=" * 60)
    print("🧹 SUMMARY")
    print("=" * 60)
    print(f"Ran {result.testsRun} tests, {len(result.failures)} failures, {len(result.errors)} errors")
    sys.exit(0 if result.wasSuccessful() else 1)
