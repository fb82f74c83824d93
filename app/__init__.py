"""Application layer: use cases, wiring and the command-line entry point."""
