"""
Watcher package: periodic change detection for a single web page.

This package contains:
- Region extraction between two markers
- Content fingerprinting
- Last-known-state tracking
- HTTP fetching and notification delivery
- The scheduled watch service that drives the detection cycle
"""

__version__ = "1.0.0"
