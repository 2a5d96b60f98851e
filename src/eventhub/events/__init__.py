"""Cross-instance change log.

Learn: Mutations are announced by appending to a shared, ordered table;
each instance's poller turns new rows into cache invalidations and SSE
pushes. See changelog.py for the log and types.py for channel names.
"""
