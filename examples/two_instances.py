#!/usr/bin/env python3
"""
EventHub cross-instance demo — write on one instance, watch it on another.

Start two instances against the same database:

    export EVENTHUB_DATABASE_URL=sqlite+aiosqlite:///./eventhub.db
    eventhub serve --port 3000 &
    eventhub serve --port 3001 &

Then run:  python examples/two_instances.py

Requires: pip install httpx
"""

import sys
import threading
import time

import httpx

WRITER = "http://localhost:3000/api"
WATCHER = "http://localhost:3001/api"


def watch(stop: threading.Event, seen: list[str]) -> None:
    """Print SSE frames from the watcher instance until told to stop."""
    with httpx.stream("GET", f"{WATCHER}/events/stream", timeout=None) as resp:
        event_name = None
        for line in resp.iter_lines():
            if stop.is_set():
                return
            if line.startswith(":"):
                print("  [watcher] keep-alive")
            elif line.startswith("event: "):
                event_name = line[len("event: "):]
            elif line.startswith("data: "):
                print(f"  [watcher] {event_name}: {line[len('data: '):]}")
                seen.append(event_name)


def main():
    for base in (WRITER, WATCHER):
        try:
            health = httpx.get(f"{base}/health", timeout=5).json()
        except httpx.ConnectError:
            print(f"Instance not reachable at {base}")
            sys.exit(1)
        print(f"{base}: {health['status']} (watermark={health['watermark']})")

    stop, seen = threading.Event(), []
    threading.Thread(target=watch, args=(stop, seen), daemon=True).start()
    time.sleep(0.5)

    client = httpx.Client(base_url=WRITER, timeout=10)

    print("\nCreating an event on the writer...")
    event = client.post(
        "/events",
        json={
            "title": "Demo night",
            "start_time": "2026-12-01T18:00:00Z",
            "end_time": "2026-12-01T21:00:00Z",
            "max_participants": 10,
        },
    ).json()
    print(f"  created {event['id']}")

    print("Registering a participant on the writer...")
    client.post(
        "/participants",
        json={"event_id": event["id"], "name": "Ada", "email": "ada@example.com"},
    )

    # The watcher's poller picks changes up within one poll interval
    deadline = time.time() + 5
    while len(seen) < 2 and time.time() < deadline:
        time.sleep(0.1)
    stop.set()

    listed = httpx.get(f"{WATCHER}/events/{event['id']}/participants").json()
    print(f"\nWatcher sees {len(listed)} participant(s) for the event")
    print("✓ cross-instance push works" if len(seen) >= 2 else "✗ no push received")


if __name__ == "__main__":
    main()
