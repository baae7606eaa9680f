"""
HEIC Conversion Domain

Watches a drop directory for new HEIC images:
- watcher.py - Directory monitoring and new-file detection
- converter.py - JPEG conversion through the sips command line tool
- cli.py - Command line entry point with a signal-driven on/off toggle
"""

__all__ = ["cli", "converter", "watcher"]
