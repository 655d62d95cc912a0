"""Launch PyFocus Timer from a source checkout: `python main.py`."""

from __future__ import annotations

import sys

from pyfocus.app import run_app

if __name__ == "__main__":
    raise SystemExit(run_app(sys.argv))
