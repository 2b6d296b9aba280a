"""Allow ``python -m blink_clipper``."""

import sys

from blink_clipper.cli import main

if __name__ == "__main__":
    sys.exit(main())
