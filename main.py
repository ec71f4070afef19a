from __future__ import annotations

import sys

from src.web.server import main as serve


def main() -> int:
    return serve(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())
