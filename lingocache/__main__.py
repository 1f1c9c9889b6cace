"""Module entrypoint for running lingocache as ``python -m lingocache``."""

from __future__ import annotations

from lingocache.cli import main


if __name__ == "__main__":
    main()
