"""
Scheduler package for the FMI news watcher.

This package contains:
- Monitored source definitions
- Change detection rules (article ids, paragraph texts)
- The per-source check cycle with retries
- Batch and daemon scheduling
"""

__version__ = "1.0.0"
