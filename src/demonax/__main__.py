"""Allow running as ``python -m demonax``."""

import sys

from demonax.cli.commands import main

if __name__ == "__main__":
    sys.exit(main())
