"""Allow ``python -m bridgekit``."""

import sys

from bridgekit.cli import main

sys.exit(main())
