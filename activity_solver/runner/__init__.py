"""Run orchestration, metrics and the command-line entry point."""
