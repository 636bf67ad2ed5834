#!/usr/bin/env python
"""
Module entry point for the sleep diary.

This allows the application to be run as:
    python -m sleep_diary_app
or via the installed console script:
    sleep-diary
"""

from __future__ import annotations

import sys

from sleep_diary_app.cli import main

if __name__ == "__main__":
    sys.exit(main())
