"""
Infrastructure primitives.

Low-level building blocks shared by the watcher: structured logging,
the error taxonomy, HTTP error mapping and retry loops.

No Syncthing or aggregation logic lives here.
"""
