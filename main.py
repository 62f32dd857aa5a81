from __future__ import annotations

from testselect.entrypoints.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
