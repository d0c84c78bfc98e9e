#!/usr/bin/env python
"""
Acceptance harness CLI entry point.

Usage:
    python cli.py suites/smoke.py                # Run every unit in a file
    python cli.py suites.checkout --tag smoke    # Run tagged units of a module
    python cli.py suites/smoke.py --seed=1234    # Replay a previous order
    python cli.py suites/smoke.py -n 4           # Four concurrent sessions
"""

from harness.cli.app import main

if __name__ == "__main__":
    main()
