"""Domain exceptions.

Learn: Services raise these; routers translate them into HTTP status
codes. Storage failures in the change log are wrapped in ChangeLogError
with the SQLAlchemy error chained as __cause__.
"""


class EventHubError(Exception):
    """Base class for all EventHub errors."""


class NotFoundError(EventHubError):
    """The requested entity does not exist."""


class ConflictError(EventHubError):
    """The write conflicts with existing state (duplicate, full event)."""


class ValidationFailed(EventHubError):
    """Request data violates a business rule."""


class ChangeLogError(EventHubError):
    """Appending to, reading from or pruning the change log failed."""


class SubscriberLagged(EventHubError):
    """A subscriber's queue overflowed and its oldest events were dropped.

    Raised once per gap by Subscriber.receive(); the next call resumes
    with the oldest event still buffered.
    """

    def __init__(self, missed: int):
        super().__init__(f"subscriber lagged, {missed} event(s) dropped")
        self.missed = missed
