"""
Liveness HTTP server for the FMI news watcher.

The hosting platform only needs a bound port that answers; the app exposes a
single health endpoint and no application routes.
"""
