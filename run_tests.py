#!/usr/bin/env python3
"""Run the web-toolbox test suite.

Usage:
    python run_tests.py            # unit tests, verbose
    python run_tests.py quick      # stop at the first failure
    python run_tests.py coverage   # unit tests with a coverage report
"""

import subprocess
import sys

SUITES = {
    "unit": ["tests/unit/", "-v", "--tb=short"],
    "quick": ["tests/unit/", "-x", "-q"],
    "coverage": ["tests/unit/", "--cov=webtoolbox", "--cov-report=term-missing"],
}


def main() -> int:
    suite = sys.argv[1] if len(sys.argv) > 1 else "unit"
    if suite not in SUITES:
        print(f"Unknown suite '{suite}', expected one of: {', '.join(SUITES)}", file=sys.stderr)
        return 2

    cmd = [sys.executable, "-m", "pytest", *SUITES[suite]]
    print(f"web-toolbox {suite} tests: {' '.join(cmd)}")
    return subprocess.run(cmd, check=False).returncode


if __name__ == "__main__":
    sys.exit(main())
