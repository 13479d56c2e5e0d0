"""geofill CLI entry point: python -m geofill"""

from __future__ import annotations

import sys

from geofill.cli import main

if __name__ == "__main__":
    sys.exit(main())
