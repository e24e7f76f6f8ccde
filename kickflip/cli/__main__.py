"""Allow ``python -m kickflip.cli`` execution."""

import sys

from kickflip.cli.crawl import main

sys.exit(main())
