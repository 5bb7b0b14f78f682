# SPDX-License-Identifier: MIT
"""Allow running bscf as ``python -m bscf``."""

import sys

from bscf.cli import main

if __name__ == "__main__":
    sys.exit(main())
