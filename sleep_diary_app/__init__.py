#!/usr/bin/env python3
"""
Sleep Diary Application.

An offline-first sleep diary: log nights, store them locally, derive statistics.
"""

__version__ = "0.1.0"
__author__ = "Sleep Diary Team"
__description__ = "Offline sleep diary with aggregate sleep statistics"
