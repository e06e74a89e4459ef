"""Exception types shared across the splash pipeline."""


class SplashError(Exception):
    """Base class for splash errors."""


class FeedError(SplashError):
    """Ticker feed could not be fetched or decoded."""


class PersistenceError(SplashError):
    """A read or write against the record store failed."""


class RecordNotFound(PersistenceError):
    """No splash record exists for the requested id (or, for level updates, none still open)."""

    def __init__(self, record_id: int):
        super().__init__(f"record with ID {record_id} not found")
        self.record_id = record_id
