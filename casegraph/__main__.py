"""Allow ``python -m casegraph``."""

import sys

from .cli import main

sys.exit(main())
