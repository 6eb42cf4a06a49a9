"""Allow running as `python -m semzoom`."""

import sys

from .cli import main

sys.exit(main())
