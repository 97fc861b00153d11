"""
Lazy batch-read pager.

Unlike PagedCollection there is no server cursor: the requested ids are
sliced locally and each slice becomes one POST to the batch/read endpoint.
"""

import math
from typing import Any, Iterable, Iterator, Mapping

import structlog

from hubspot_orm.client import ApiClient, ApiResponse, get_client

logger = structlog.get_logger(__name__)


class PagedBatch:
    """
    Iterable over the records for a fixed list of ids.

    Example:
        for contact in Contact.batch_read([1, 2, 3], properties=["email"]):
            print(contact.email)
    """

    MAX_LIMIT = 100  # ids per batch/read call

    def __init__(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        resource_class: type | None = None,
        object_ids: Iterable[Any] = (),
        client: ApiClient | None = None,
    ):
        self.url = url
        self.params: dict[str, Any] = params if params is not None else {}
        self.resource_class = resource_class
        self.object_ids = list(object_ids)

        self._client = client
        self._log = logger.bind(url=url)

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} url={self.url!r} params={self.params!r} "
            f"resource_class={getattr(self.resource_class, '__name__', None)} "
            f"object_ids_count={len(self.object_ids)}>"
        )

    @property
    def client(self) -> ApiClient:
        return self._client or get_client()

    @property
    def page_count(self) -> int:
        return math.ceil(len(self.object_ids) / self.MAX_LIMIT)

    def each_page(self) -> Iterator[list[Any]]:
        """Yield the records for each slice of ids; empty pages are skipped."""
        for start in range(0, len(self.object_ids), self.MAX_LIMIT):
            ids = self.object_ids[start:start + self.MAX_LIMIT]
            response = self._fetch_page(ids)
            page = self._process_results(response.data or {})
            self._log.debug("Fetched batch page", requested=len(ids), count=len(page))
            if page:
                yield page

    def __iter__(self) -> Iterator[Any]:
        for page in self.each_page():
            yield from page

    def all(self) -> list[Any]:
        results: list[Any] = []
        for page in self.each_page():
            results.extend(page)
        return results

    def _fetch_page(self, object_ids: list[Any]) -> ApiResponse:
        body = dict(self.params)
        body["inputs"] = [{"id": object_id} for object_id in object_ids]
        return self.client.post(self.url, json=body)

    def _process_results(self, data: Mapping[str, Any]) -> list[Any]:
        results = data.get("results") or []
        if self.resource_class is None:
            return list(results)
        return [self.resource_class(result) for result in results]
