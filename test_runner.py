#!/usr/bin/env python3
"""
Test runner for the Movie Night tracker.

Usage:
  python test_runner.py                  - Check dependencies, then run every suite
  python test_runner.py --deps           - Only check dependencies
  python test_runner.py stats_engine     - Run tests/test_stats_engine.py
"""

import unittest
import sys
import os
import time

TESTS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'tests')

# (distribution, import name)
REQUIRED_PACKAGES = [
    ('streamlit', 'streamlit'),
    ('numpy', 'numpy'),
    ('pandas', 'pandas'),
    ('requests', 'requests'),
    ('tmdbv3api', 'tmdbv3api'),
    ('gspread', 'gspread'),
    ('google-auth', 'google.oauth2'),
    ('google-generativeai', 'google.generativeai'),
    ('plotly', 'plotly'),
]


def check_dependencies():
    """Report which third-party packages are importable."""
    print("🔧 Checking Dependencies")
    print("-" * 40)

    missing = []
    for distribution, import_name in REQUIRED_PACKAGES:
        try:
            __import__(import_name)
            print(f"✅ {distribution}")
        except ImportError:
            print(f"❌ {distribution} - NOT FOUND")
            missing.append(distribution)

    if missing:
        print("\n💡 Install with: pip install " + " ".join(missing))
        return False
    return True


def run_suite(pattern='test_*.py'):
    """Discover suites matching pattern under tests/ and print a summary."""
    suite = unittest.TestLoader().discover(TESTS_DIR, pattern=pattern)
    if suite.countTestCases() == 0:
        print(f"❌ No tests found for pattern: {pattern}")
        return False

    print(f"🎬 Movie Night Tracker - {pattern}")
    print("=" * 60)

    start_time = time.time()
    result = unittest.TextTestRunner(verbosity=2).run(suite)
    elapsed = time.time() - start_time

    print("=" * 60)
    print(f"⏱️  {elapsed:.2f}s  🧪 {result.testsRun} run  "
          f"❌ {len(result.failures)} failed  💥 {len(result.errors)} errors  "
          f"⏭️  {len(result.skipped)} skipped")
    print("🎉 ALL TESTS PASSED! 🎉" if result.wasSuccessful() else "⚠️  Some tests failed.")
    return result.wasSuccessful()


def main():
    args = sys.argv[1:]
    if args and args[0] == '--deps':
        return check_dependencies()
    if args:
        return run_suite(f'test_{args[0]}.py')

    if not check_dependencies():
        print("\n❌ Cannot run tests due to missing dependencies")
        return False
    print()
    return run_suite()


if __name__ == "__main__":
    sys.exit(0 if main() else 1)
