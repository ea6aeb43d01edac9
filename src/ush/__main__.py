"""Allow ``python -m ush``."""

import sys

from ush.cli import main

sys.exit(main())
