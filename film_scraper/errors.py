"""Exception types for fetching, extraction and storage."""


class ScraperError(Exception):
    pass


class FetchError(ScraperError):
    """A single item could not be fetched or extracted. Never fatal to a run."""


class NotFound(FetchError):
    """The remote resource does not exist (404/410, unreachable host, bad locator)."""


class NoData(FetchError):
    """The page was retrieved but the expected element is absent."""


class TransientFetchError(FetchError):
    """Retries exhausted or an unexpected HTTP status. The item stays pending."""


class MalformedField(ScraperError, ValueError):
    """A field element was present but its value could not be interpreted."""


class StorageError(ScraperError):
    """The worklist store is unreadable or unwritable. Aborts the run."""
