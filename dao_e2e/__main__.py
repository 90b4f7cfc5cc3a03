import sys

from dao_e2e.cli import main

sys.exit(main())
