#!/usr/bin/env python3
"""Thin loader delegating to the CLI interface layer."""

import sys

from interface.tasks_app import main

if __name__ == "__main__":
    sys.exit(main())
