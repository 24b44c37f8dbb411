"""Allow ``python -m chapa``."""

import sys

from chapa.cli import main

sys.exit(main())
