"""Run with: python -m reportbot"""

import sys

from reportbot.main import main

if __name__ == "__main__":
    sys.exit(main())
