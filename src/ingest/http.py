"""HTTP client for feeds and article pages."""

import time
from enum import Enum
from io import BytesIO
from typing import Annotated

import httpx
import structlog
from pydantic import Field

from src.data_model import StrictBaseModel
from src.ingest.config import FetchConfig


logger = structlog.get_logger()

_CHUNK_SIZE = 8192
_HTTP_OK_MIN = 200
_HTTP_OK_MAX = 300


class FetchErrorClass(str, Enum):
    """Classification of fetch errors.

    - NETWORK_TIMEOUT: Request timed out
    - CONNECTION_ERROR: Could not establish connection
    - RESPONSE_SIZE_EXCEEDED: Response exceeded max size limit
    - HTTP_STATUS: Non-2xx response
    - UNKNOWN: Unclassified error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    HTTP_STATUS = "HTTP_STATUS"
    UNKNOWN = "UNKNOWN"


_RETRYABLE = frozenset({FetchErrorClass.NETWORK_TIMEOUT, FetchErrorClass.CONNECTION_ERROR})


class FetchError(StrictBaseModel):
    """Typed error from a fetch operation."""

    error_class: FetchErrorClass
    message: Annotated[str, Field(min_length=1)]
    status_code: int | None = None

    def __str__(self) -> str:
        return f"{self.error_class.value}: {self.message}"


class FetchResult(StrictBaseModel):
    """Result of a fetch operation."""

    url: Annotated[str, Field(min_length=1)]
    status_code: Annotated[int, Field(ge=0, le=599)] = 0
    body_bytes: bytes = b""
    encoding: str | None = None
    error: FetchError | None = None

    @property
    def is_success(self) -> bool:
        """Check if the fetch was successful (2xx status, no error)."""
        return self.error is None and _HTTP_OK_MIN <= self.status_code < _HTTP_OK_MAX

    @property
    def text(self) -> str:
        """Body decoded with the response charset (UTF-8 when unknown)."""
        return self.body_bytes.decode(self.encoding or "utf-8", errors="replace")


class ResponseSizeExceededError(Exception):
    """Raised when response size exceeds the configured limit."""


class HttpFetcher:
    """HTTP GET with retries, size limits and failure classification.

    Never raises for transport failures: every outcome is a FetchResult.
    The underlying ``httpx.Client`` is shared across worker threads.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        run_id: str = "",
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            config: Fetch configuration.
            run_id: Run identifier for logging.
            client: Preconfigured client (tests inject a MockTransport);
                one is created and owned otherwise.
        """
        self._config = config or FetchConfig()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=self._config.timeout_seconds,
            follow_redirects=True,
            headers={
                "User-Agent": self._config.user_agent,
                "Accept": "*/*",
            },
        )
        self._log = logger.bind(component="fetch", run_id=run_id)

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the client if this fetcher created it."""
        if self._owns_client:
            self._client.close()

    def fetch(self, url: str) -> FetchResult:
        """Fetch a URL.

        Args:
            url: The URL to fetch.

        Returns:
            FetchResult with status and body, or error details.
        """
        start = time.perf_counter()
        policy = self._config.retry_policy
        result = self._execute_single(url)

        for attempt in range(policy.max_retries):
            if result.error is None or result.error.error_class not in _RETRYABLE:
                break
            delay_ms = policy.get_delay_ms(attempt)
            self._log.debug("retry_attempt", url=url, attempt=attempt + 1, delay_ms=delay_ms)
            time.sleep(delay_ms / 1000.0)
            result = self._execute_single(url)

        self._log.debug(
            "fetch_complete",
            url=url,
            status_code=result.status_code,
            bytes=len(result.body_bytes),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            error_class=result.error.error_class.value if result.error else None,
        )
        return result

    def _execute_single(self, url: str) -> FetchResult:
        try:
            with self._client.stream("GET", url) as response:
                content_length = response.headers.get("content-length")
                if content_length and int(content_length) > self._config.max_response_size_bytes:
                    return self._failed(
                        url,
                        FetchErrorClass.RESPONSE_SIZE_EXCEEDED,
                        f"Response size {content_length} exceeds limit "
                        f"{self._config.max_response_size_bytes}",
                        response.status_code,
                    )

                body = self._read_body_with_limit(response)
                error = None
                if not _HTTP_OK_MIN <= response.status_code < _HTTP_OK_MAX:
                    error = FetchError(
                        error_class=FetchErrorClass.HTTP_STATUS,
                        message=f"HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                return FetchResult(
                    url=str(response.url),
                    status_code=response.status_code,
                    body_bytes=body,
                    encoding=response.charset_encoding,
                    error=error,
                )

        except httpx.TimeoutException as e:
            return self._failed(url, FetchErrorClass.NETWORK_TIMEOUT, f"Request timed out: {e}")

        except httpx.ConnectError as e:
            return self._failed(url, FetchErrorClass.CONNECTION_ERROR, f"Connection failed: {e}")

        except ResponseSizeExceededError as e:
            return self._failed(url, FetchErrorClass.RESPONSE_SIZE_EXCEEDED, str(e))

        except Exception as e:  # noqa: BLE001
            return self._failed(url, FetchErrorClass.UNKNOWN, f"Unexpected error: {e}")

    def _read_body_with_limit(self, response: httpx.Response) -> bytes:
        buffer = BytesIO()
        total_read = 0
        max_size = self._config.max_response_size_bytes

        for chunk in response.iter_bytes(chunk_size=_CHUNK_SIZE):
            total_read += len(chunk)
            if total_read > max_size:
                msg = (
                    f"Response size exceeded limit of {max_size} bytes "
                    f"(read {total_read} bytes)"
                )
                raise ResponseSizeExceededError(msg)
            buffer.write(chunk)

        return buffer.getvalue()

    @staticmethod
    def _failed(
        url: str,
        error_class: FetchErrorClass,
        message: str,
        status_code: int | None = None,
    ) -> FetchResult:
        return FetchResult(
            url=url,
            status_code=status_code or 0,
            error=FetchError(
                error_class=error_class,
                message=message or error_class.value,
                status_code=status_code,
            ),
        )
