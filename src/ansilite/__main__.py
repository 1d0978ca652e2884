"""Allow ``python -m ansilite``."""

import sys

from ansilite.cli.playbook import main

sys.exit(main())
