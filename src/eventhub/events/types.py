"""Change channel and operation constants.

Learn: A channel names which family of entities (and therefore which
caches) a change touches. Every instance routes on these strings, so
they are part of the wire contract with browsers too: the SSE event
name is the channel.
"""

# ─── Channels ────────────────────────────────────────────

EVENT_CHANGES = "event_changes"
PARTICIPANT_CHANGES = "participant_changes"

CHANNELS = (EVENT_CHANGES, PARTICIPANT_CHANGES)

# ─── Operations carried in change payloads ───────────────

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"
