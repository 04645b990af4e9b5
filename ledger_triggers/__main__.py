__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import sys

from ledger_triggers.cli import main

sys.exit(main())
