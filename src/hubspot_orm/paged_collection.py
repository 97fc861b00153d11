"""
Lazy, cursor-paginated view over list and search endpoints.

Nothing is fetched until the collection is iterated. Pages are requested
one at a time, each carrying the ``after`` cursor from the previous one.
"""

import copy
import time
from typing import Any, Iterator, Mapping

import structlog

from hubspot_orm.client import ApiClient, ApiResponse, get_client
from hubspot_orm.filters import build_filters

logger = structlog.get_logger(__name__)


class PagedCollection:
    """
    Iterable over every record behind a list or search endpoint.

    Example:
        contacts = Contact.search({"email_contains": "acme.com"})

        for page in contacts.each_page():
            print(len(page))

        newest = contacts.first(5)
        print(contacts.total())
    """

    MAX_LIMIT = 100  # HubSpot max items per page
    SEARCH_DELAY = 0.2  # seconds between search pages (search is limited to ~5 req/s)

    def __init__(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        resource_class: type | None = None,
        method: str = "get",
        results_field: str = "results",
        client: ApiClient | None = None,
    ):
        self.url = url
        self.params: dict[str, Any] = params if params is not None else {}
        self.resource_class = resource_class
        self.method = method.lower()
        self.results_field = results_field

        self._client = client
        self._total: int | None = None
        self._log = logger.bind(url=url)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} url={self.url!r} method={self.method!r} "
            f"params={self.params!r} resource_class="
            f"{getattr(self.resource_class, '__name__', None)}>"
        )

    @property
    def client(self) -> ApiClient:
        return self._client or get_client()

    def is_search(self) -> bool:
        return "/search" in self.url

    # -------------------------------------------------------------------------
    # Iteration
    # -------------------------------------------------------------------------

    def each_page(self) -> Iterator[list[Any]]:
        """
        Yield one list of records per page until the cursor runs out.

        Empty pages are skipped. The next page is only requested once the
        caller asks for it.
        """
        after = None
        page_number = 0

        while True:
            response = self._fetch_page(after)
            data = response.data or {}
            page_number += 1

            if data.get("total") is not None:
                self._total = data["total"]

            page = self._process_results(data)
            self._log.debug("Fetched page", page=page_number, count=len(page))
            if page:
                yield page

            after = ((data.get("paging") or {}).get("next") or {}).get("after")
            if not after:
                break

            if self.is_search():
                time.sleep(self.SEARCH_DELAY)

    def __iter__(self) -> Iterator[Any]:
        for page in self.each_page():
            yield from page

    def all(self) -> list[Any]:
        """Fetch every page into one list."""
        results: list[Any] = []
        for page in self.each_page():
            results.extend(page)
        return results

    def first(self, limit: int = 1) -> Any:
        """
        Fetch only as many pages as needed for ``limit`` records.

        Returns a single record (or None) when ``limit`` is 1, else a list.
        The collection's own ``limit`` parameter is restored afterwards.
        """
        had_limit = "limit" in self.params
        original_limit = self.params.pop("limit", None)
        self.params["limit"] = min(limit, self.MAX_LIMIT)

        resources: list[Any] = []
        try:
            for page in self.each_page():
                resources.extend(page)
                if len(resources) >= limit:
                    break
        finally:
            if had_limit:
                self.params["limit"] = original_limit
            else:
                self.params.pop("limit", None)

        if limit == 1:
            return resources[0] if resources else None
        return resources[:limit]

    def total(self) -> int | None:
        """
        Number of matching records, as reported by the search endpoint.

        Costs one single-record request the first time it is called.
        """
        if not self.is_search():
            raise NotImplementedError("Total only available for search requests")

        if self._total is None:
            had_properties = "properties" in self.params
            original_properties = self.params.pop("properties", None)
            self.params["properties"] = ["hs_object_id"]
            try:
                # each_page records the total as a side effect
                self.first()
            finally:
                if had_properties:
                    self.params["properties"] = original_properties
                else:
                    self.params.pop("properties", None)

        return self._total

    # -------------------------------------------------------------------------
    # Query building
    # -------------------------------------------------------------------------

    def where(self, filters: Mapping[str, Any] | None = None, **kwargs: Any) -> "PagedCollection":
        """Return a new collection with the extra filters ANDed in."""
        collection = copy.copy(self)
        collection.params = copy.deepcopy(self.params)
        collection._total = None
        return collection.where_in_place(filters, **kwargs)

    def where_in_place(self, filters: Mapping[str, Any] | None = None, **kwargs: Any) -> "PagedCollection":
        """Add filters to this collection's first filter group."""
        combined = {**(filters or {}), **kwargs}
        groups = self.params.setdefault("filterGroups", [])
        if not groups:
            groups.append({"filters": []})
        groups[0].setdefault("filters", []).extend(build_filters(combined))
        self._total = None
        return self

    def select(self, *properties: str) -> "PagedCollection":
        """Request additional properties on every returned record."""
        selected = self.params.setdefault("properties", [])
        for name in properties:
            if name not in selected:
                selected.append(name)
        return self

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _fetch_page(self, after: str | None) -> ApiResponse:
        params = dict(self.params)
        if after:
            params["after"] = after

        if self.method == "get":
            return self.client.get(self.url, params=params)
        return self.client.request(self.method, self.url, json=params)

    def _process_results(self, data: Mapping[str, Any]) -> list[Any]:
        results = data.get(self.results_field) or []
        if self.resource_class is None:
            return list(results)
        return [self.resource_class(result) for result in results]
