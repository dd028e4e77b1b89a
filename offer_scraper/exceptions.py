"""
Exceptions for the crawling and extraction process.

Every error defined here is caught where it occurs and turned into a logged
warning plus an empty or skipped result; none of them aborts a run.
"""


class CrawlError(Exception):
    """Base class for crawl exceptions."""

    def __init__(self, message: str, url: str = None):
        super().__init__(message)
        self.url = url


class NavigationError(CrawlError):
    """
    Exception raised when a page cannot be reached.

    Covers network and DNS failures, HTTP error statuses and navigation
    timeouts.
    """

    pass


class FetchTimeout(CrawlError):
    """
    Exception raised when a selector wait exceeds its bound.

    The page loaded, but the element the caller asked to wait for never
    appeared within the configured timeout.
    """

    pass


class PageQueryError(CrawlError):
    """Exception raised when evaluating a selector against a page fails."""

    pass


class NoOffersFound(CrawlError):
    """
    Exception raised when a product page carries no offer elements.

    This exception is raised when the page loaded and the offer selector
    was seen, but matched nothing by the time the offers were read. It is
    not retried.
    """

    pass
