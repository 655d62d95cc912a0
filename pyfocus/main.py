from __future__ import annotations
import sys
from pyfocus.app import run_app


def main() -> int:
    """Module entrypoint for `python -m pyfocus.main` and the `pyfocus` script."""
    return run_app(sys.argv)


if __name__ == "__main__":
    raise SystemExit(main())
