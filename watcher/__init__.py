"""
Page watching primitives for the FMI news watcher.

This package contains:
- Parsed page documents and their items
- The HTTP page fetcher
- Snapshot stores (MongoDB and in-memory)
- The e-mail notifier
"""
