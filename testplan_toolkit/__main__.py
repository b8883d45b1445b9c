import sys

from testplan_toolkit.cli import main

sys.exit(main())
