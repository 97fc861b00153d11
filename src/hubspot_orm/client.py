"""
HubSpot API Client

Synchronous HTTP gateway with:
- Bearer token authentication from the process-wide config
- Retry on 429 honouring the Retry-After header
- Connection pooling via httpx
- Request/response logging (bodies only at debug level)
- Typed errors for every non-2xx response
"""

import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)

from hubspot_orm.config import HubspotConfig, config_version, get_config
from hubspot_orm.exceptions import (
    NotConfiguredError,
    RateLimitExceededError,
    RequestError,
    error_from_response,
)

logger = structlog.get_logger(__name__)

USER_AGENT = "hubspot-orm/1.0"


@dataclass
class ApiResponse:
    """A successful response: status, parsed JSON body and headers."""

    status_code: int
    data: Any = field(default_factory=dict)
    headers: httpx.Headers = field(default_factory=httpx.Headers)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ApiClient:
    """
    Thin HubSpot HTTP client.

    Example:
        client = ApiClient(access_token="pat-na1-...")

        with client:
            response = client.get("/crm/v3/objects/contacts", params={"limit": 1})
            print(response.data["results"])
    """

    BASE_URL = "https://api.hubapi.com"
    MAX_RETRIES = 3
    RETRY_WAIT_TIME = 1.0  # seconds, when no Retry-After header is sent

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str = BASE_URL,
        timeout: float | httpx.Timeout = 30.0,
        max_retries: int = MAX_RETRIES,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            access_token: Private app or OAuth access token
            base_url: API host (overridable for tests)
            timeout: Seconds, or an httpx.Timeout with per-phase values
            max_retries: Retries after a 429 before giving up
            transport: Custom httpx transport (e.g. httpx.MockTransport)
        """
        self.access_token = access_token
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.transport = transport

        self._client: httpx.Client | None = None

        # Request counters for observability
        self._request_count = 0
        self._error_count = 0
        self._retry_count = 0

        self._log = logger.bind(base_url=base_url)

    @classmethod
    def from_config(
        cls,
        config: HubspotConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> "ApiClient":
        return cls(
            access_token=config.access_token,
            timeout=config.httpx_timeout(),
            max_retries=config.max_retries,
            transport=transport,
        )

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        """Get HTTP client, creating if needed."""
        if self._client is None:
            headers = {
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            }
            if self.access_token:
                headers["Authorization"] = f"Bearer {self.access_token}"

            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                transport=self.transport,
            )
        return self._client

    # -------------------------------------------------------------------------
    # Verbs
    # -------------------------------------------------------------------------

    def get(self, path: str, params: dict[str, Any] | None = None) -> ApiResponse:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> ApiResponse:
        return self.request("POST", path, json=json)

    def patch(self, path: str, json: Any = None) -> ApiResponse:
        return self.request("PATCH", path, json=json)

    def delete(self, path: str) -> ApiResponse:
        return self.request("DELETE", path)

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> ApiResponse:
        """
        Issue a request, retrying on 429 and raising typed errors otherwise.
        """
        if not self.access_token:
            raise NotConfiguredError("Hubspot API not configured")

        method = method.upper()
        log = self._log.bind(method=method, path=path)
        query = self._prepare_params(params)

        @retry(
            retry=retry_if_exception_type(RateLimitExceededError),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait_for_retry,
            before_sleep=self._log_retry,
            reraise=True,
        )
        def _do_request() -> ApiResponse:
            self._request_count += 1
            request_id = self._request_count

            start_time = time.monotonic()
            response = self.client.request(method, path, params=query, json=json)
            elapsed = time.monotonic() - start_time

            log.info(
                "API request",
                request_id=request_id,
                url=str(response.request.url),
                status_code=response.status_code,
                elapsed_s=round(elapsed, 2),
            )
            if json is not None:
                log.debug("Request body", request_id=request_id, body=json)
            log.debug("Response body", request_id=request_id, body=response.text)

            return self.handle_response(response)

        try:
            return _do_request()
        except RateLimitExceededError:
            log.error("Exceeded maximum retries for rate-limited request", max_retries=self.max_retries)
            raise

    def handle_response(self, response: httpx.Response) -> ApiResponse:
        """Parse a 2xx response or raise the matching RequestError."""
        if response.is_success:
            return ApiResponse(
                status_code=response.status_code,
                data=self._parse_body(response),
                headers=response.headers,
            )

        self._error_count += 1
        error = error_from_response(response)
        if not isinstance(error, RateLimitExceededError):
            self._log.error(
                "API error",
                status_code=response.status_code,
                body=response.text[:500],
            )
        raise error

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _prepare_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
        if not params:
            return None
        prepared = {k: v for k, v in params.items() if v is not None}
        if isinstance(prepared.get("properties"), (list, tuple)):
            prepared["properties"] = ",".join(prepared["properties"])
        return prepared

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RequestError(
                f"Invalid JSON response: {e}",
                status_code=response.status_code,
                response_body=response.text[:500],
                response=response,
            ) from e

    def _wait_for_retry(self, retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(error, "retry_after", None)
        return self.RETRY_WAIT_TIME if retry_after is None else retry_after

    def _log_retry(self, retry_state: RetryCallState) -> None:
        self._retry_count += 1
        wait = retry_state.next_action.sleep if retry_state.next_action else None
        self._log.warning(
            "Rate limit hit, retrying",
            attempt=retry_state.attempt_number,
            wait_s=wait,
        )

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Get client statistics for monitoring."""
        return {
            "request_count": self._request_count,
            "error_count": self._error_count,
            "retry_count": self._retry_count,
            "error_rate": round(self._error_count / max(1, self._request_count), 4),
        }


# ---------------------------------------------------------------------------
# Process-wide default client
# ---------------------------------------------------------------------------

_default_client: ApiClient | None = None
_default_version: int | None = None


def get_client() -> ApiClient:
    """
    Return the shared client, rebuilding it whenever the config changed.

    A client installed with ``set_client`` is kept until ``reset_client``.
    """
    global _default_client, _default_version
    version = config_version()
    if _default_client is None or (
        _default_version is not None and _default_version != version
    ):
        if _default_client is not None:
            _default_client.close()
        _default_client = ApiClient.from_config(get_config())
        _default_version = version
    return _default_client


def set_client(client: ApiClient) -> None:
    """Install a specific client for every resource call."""
    global _default_client, _default_version
    _default_client = client
    _default_version = None


def reset_client() -> None:
    global _default_client, _default_version
    if _default_client is not None:
        _default_client.close()
    _default_client = None
    _default_version = None
