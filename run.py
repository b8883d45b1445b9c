# -*- coding: utf-8 -*-

"""
Main entry point for launching Test Plan Toolkit from a source checkout.
"""

import sys

from testplan_toolkit.cli import main

if __name__ == '__main__':
    sys.exit(main())
