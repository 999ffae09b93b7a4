"""Run changelog-lint with ``python -m changelog_lint``."""

import sys

from changelog_lint.cli import main

sys.exit(main())
