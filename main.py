"""Main entry point for the inventory extraction backend."""
from __future__ import annotations

import sys

from dotenv import load_dotenv

# Load .env before the configuration reads environment overrides
load_dotenv()

from app.startup import run_cli  # noqa: E402


def main() -> None:
    """Application entry point."""
    sys.exit(run_cli())


__all__ = ["main"]

if __name__ == "__main__":
    main()
