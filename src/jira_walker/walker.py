"""Lazy, restartable iteration over paginated Jira search results.

The walker wraps a page source (normally :class:`JiraRestApiClient`) and
presents every issue matching a JQL query as one sequence. Pages are
fetched one at a time, only when the buffered page is used up.

Failure policy: authorization errors propagate to the caller, any other
fetch error is recorded to the diagnostics sink and ends the current run
early, so a ``for`` loop simply stops.
"""

from collections.abc import Callable, Iterator, Sequence
from typing import Any, Generic, Protocol, TypeAlias, TypeVar

import structlog

from .restapi import AuthorizationError
from .restapi.types import Issue, SearchResponse

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_PER_PAGE = 50

Fields: TypeAlias = str | Sequence[str] | None


class SearchService(Protocol):
    """Source of search result pages."""

    def search(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = 20,
        fields: Fields = None,
    ) -> SearchResponse: ...


class DiagnosticsSink(Protocol):
    """Receives failures the walker records instead of raising.

    Any structlog bound logger satisfies this protocol.
    """

    def error(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...


class WalkerError(Exception):
    """Base class for walker usage errors."""


class ConfigurationError(WalkerError):
    """Raised when the walker is driven before a query was configured."""


class InvalidArgumentError(WalkerError, TypeError):
    """Raised when a non-callable transform is registered."""


class OutOfRangeError(WalkerError, IndexError):
    """Raised when current() is called with no issue under the cursor."""


class IssueWalker(Generic[T]):
    """Paginated sequence of search results.

    Drive it with ``for issue in walker`` or with the explicit protocol::

        walker.restart()
        while walker.has_next():
            item = walker.current()
            walker.advance()

    Iterating with ``for`` restarts the walker first, so each loop replays
    the query from the first page. The explicit protocol does not restart
    on its own; a paused walker resumes where it stopped.

    Not safe for concurrent iteration from several threads.
    """

    def __init__(
        self,
        service: SearchService,
        per_page: int | None = None,
        diagnostics: DiagnosticsSink | None = None,
    ):
        """Initialize the walker.

        Args:
            service: Page source, usually a JiraRestApiClient.
            per_page: Issues requested per page (default: 50).
            diagnostics: Sink for swallowed fetch failures; defaults to
                this module's structlog logger.

        Raises:
            ValueError: If per_page is not positive.
        """
        if per_page is not None and per_page <= 0:
            msg = "per_page must be positive"
            raise ValueError(msg)

        self._service = service
        self._per_page = per_page or DEFAULT_PER_PAGE
        self._diagnostics: DiagnosticsSink = logger if diagnostics is None else diagnostics

        self._jql: str | None = None
        self._fields: Fields = None
        self._transform: Callable[[Issue], T] | None = None

        self.restart()

    @property
    def per_page(self) -> int:
        return self._per_page

    @property
    def position(self) -> int:
        """Index of the cursor across all pages (0 before the first fetch)."""
        if self._pages_fetched > 0:
            return self._offset + (self._pages_fetched - 1) * self._per_page
        return 0

    def configure(self, jql: str, fields: Fields = None) -> None:
        """Set the query to walk.

        Replacing the query does not reset the cursor; call restart()
        for a clean run.

        Args:
            jql: JQL query string.
            fields: Field selector passed through to the search service.
        """
        self._jql = jql
        self._fields = fields

    def set_transform(self, transform: Callable[[Issue], T]) -> None:
        """Register a function applied to each issue when it is read.

        Raises:
            InvalidArgumentError: If transform is not callable.
        """
        if not callable(transform):
            msg = "passed argument is not callable"
            raise InvalidArgumentError(msg)
        self._transform = transform

    def restart(self) -> None:
        """Reset the cursor. The query and transform are kept."""
        self._offset = 0
        self._pages_fetched = 0
        self._total: int | None = None
        self._page: SearchResponse | None = None
        self._executed = False

    def has_next(self) -> bool:
        """Return True if an issue is available under the cursor.

        Fetches the first page on the first call after a restart, and the
        next page once the buffered one is used up.

        Raises:
            ConfigurationError: If configure() was never called.
            AuthorizationError: If the search service rejects credentials.
        """
        if self._jql is None:
            msg = "configure(jql, fields) must be called first"
            raise ConfigurationError(msg)

        if not self._executed:
            page = self._fetch_page()
            if page is None:
                return False
            self._executed = True
            return self._has_buffered_issue()

        if self._page_exhausted() and self.position < self._known_total:
            if self._fetch_page() is None:
                return False
            return self._has_buffered_issue()

        return self.position < self._known_total

    def advance(self) -> None:
        """Move the cursor to the next issue in the buffered page."""
        self._offset += 1

    def current(self) -> Issue | T:
        """Return the issue under the cursor, passed through the transform.

        Exceptions raised by the transform propagate unchanged.

        Raises:
            OutOfRangeError: If no issue is under the cursor, or the cursor
                has reached the server-reported total.
        """
        if self._page_exhausted() or self.position >= self._known_total:
            msg = f"No issue at position {self.position}"
            raise OutOfRangeError(msg)

        issue = self._page.issues[self._offset]
        if self._transform is not None:
            return self._transform(issue)
        return issue

    def count(self) -> int:
        """Return the total number of matching issues.

        Fetches the first page if the total is not known yet. Returns 0
        when that fetch failed.
        """
        if self._total is None:
            self.has_next()
        return self._known_total

    def __iter__(self) -> Iterator[Issue | T]:
        self.restart()
        while self.has_next():
            yield self.current()
            self.advance()

    @property
    def _known_total(self) -> int:
        return self._total if self._total is not None else 0

    def _page_exhausted(self) -> bool:
        return self._page is None or self._offset >= self._page.issues_count

    def _has_buffered_issue(self) -> bool:
        if self._known_total == 0:
            return False
        if self._page_exhausted():
            self._diagnostics.warning(
                "Search returned an empty page before reaching the total",
                jql=self._jql,
                start_at=self.position,
                total=self._total,
            )
            return False
        return True

    def _fetch_page(self) -> SearchResponse | None:
        """Fetch and buffer the page starting at the current position.

        Returns None when the fetch failed with anything other than an
        authorization error; the failure goes to the diagnostics sink.
        """
        start_at = self.position
        logger.debug(
            "Fetching search page",
            jql=self._jql,
            start_at=start_at,
            max_results=self._per_page,
        )
        try:
            page = self._service.search(
                jql=self._jql,
                start_at=start_at,
                max_results=self._per_page,
                fields=self._fields,
            )
        except AuthorizationError:
            raise
        except Exception as exc:
            self._diagnostics.error(
                "Failed to fetch search page",
                jql=self._jql,
                start_at=start_at,
                error=str(exc),
            )
            return None

        # The total never shrinks within one run
        self._total = max(page.total, self._known_total)
        self._page = page
        self._offset = 0
        self._pages_fetched += 1
        return page
