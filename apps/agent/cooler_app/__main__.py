from __future__ import annotations

import sys

from cooler_app.cli import main as _cli_main


DEFAULT_COMMAND = "run"


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``macbook-cooler``; a bare launch from a login item starts the agent."""
    args = list(sys.argv[1:] if argv is None else argv)
    return int(_cli_main(args or [DEFAULT_COMMAND]))


if __name__ == "__main__":
    raise SystemExit(main())
