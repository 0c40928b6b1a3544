"""Allow ``python -m dreamembed.cli`` execution."""

import sys

from dreamembed.cli.worker import main

sys.exit(main())
