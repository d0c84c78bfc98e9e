"""Command line interface for the acceptance-test harness."""
