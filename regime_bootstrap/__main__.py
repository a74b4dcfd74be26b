import sys

from regime_bootstrap.cli import main

sys.exit(main())
