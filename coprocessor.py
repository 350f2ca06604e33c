#!/usr/bin/env python3
"""Entry point for the AprilTag vision coprocessor."""

import sys

from app.service import main

if __name__ == "__main__":
    sys.exit(main())
