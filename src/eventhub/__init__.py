"""EventHub — event registration API.

Multiple stateless instances share one database. Each instance keeps its
own in-memory caches and live SSE connections coherent by tailing a shared
change log instead of relying on a message broker.
"""

__version__ = "0.1.0"
