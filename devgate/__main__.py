"""devgate entry point.

Usage:
    python -m devgate [--config CONFIG_PATH] [--auth-password PW | --password-from-file PATH]
"""

import sys

from devgate.server import main

sys.exit(main())
