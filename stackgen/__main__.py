"""Allow ``python -m stackgen``."""

import sys

from stackgen.cli import main

sys.exit(main())
