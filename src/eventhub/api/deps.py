"""FastAPI dependencies for the per-process sync components.

Learn: The cache, change log and broadcaster are built once in the
lifespan and parked on app.state. Routes pull them from there instead of
importing module globals, so tests can build an app with their own.
"""

from fastapi import Request

from eventhub.cache import CacheCoordinator
from eventhub.events.changelog import ChangeLog
from eventhub.realtime.broadcaster import Broadcaster


def get_cache(request: Request) -> CacheCoordinator:
    return request.app.state.cache


def get_changelog(request: Request) -> ChangeLog:
    return request.app.state.changelog


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster
