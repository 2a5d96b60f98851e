"""Real-time infrastructure — in-process broadcaster + SSE.

Learn: Changes reach browsers in two hops:
1. Change log poller → Broadcaster.publish (one call per change)
2. Broadcaster → per-client StreamSession → SSE frames

No broker: every instance tails the shared change log on its own.
"""
