"""
IT Glue REST API client.

Handles authentication, JSON:API request bodies, cursor pagination via
``links.next`` and retries with capped exponential backoff for rate limiting
(HTTP 429) and transient server errors.
"""

import json
import logging
import time
from collections.abc import Callable, Iterable, Iterator
from typing import Any

import requests

from msp_toolkit.exceptions import ITGlueAPIError, RetryableError
from msp_toolkit.itglue.resources import Resource, build_params, to_bulk_payload, to_payload
from msp_toolkit.util.redact import redact_sensitive, truncate
from msp_toolkit.util.retry import (
    RetryStrategy,
    is_retryable_error,
    is_retryable_status,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.itglue.com"
REGION_URLS = {
    "us": "https://api.itglue.com",
    "eu": "https://api.eu.itglue.com",
    "au": "https://api.au.itglue.com",
}
JSONAPI_MEDIA_TYPE = "application/vnd.api+json"
MAX_PAGE_SIZE = 1000


def _error_detail(response: requests.Response) -> str:
    """Pull a readable message out of a JSON:API error document."""
    try:
        document = response.json()
    except ValueError:
        return response.reason or "request failed"

    errors = document.get("errors") if isinstance(document, dict) else None
    if not errors:
        return response.reason or "request failed"

    details = []
    for error in errors:
        if isinstance(error, dict):
            details.append(error.get("detail") or error.get("title") or str(error))
        else:
            details.append(str(error))
    return "; ".join(details)


def _body_excerpt(response: requests.Response) -> str | None:
    text = response.text
    if not text:
        return None
    return truncate(redact_sensitive(text))


class ITGlueClient:
    """
    Thin client for the IT Glue JSON:API.

    Attributes:
        base_url: API root, without trailing slash
        page_size: page[size] sent on collection requests
        timeout: Per-request timeout in seconds
        retry: Parameters passed to retry_with_backoff
        session: requests.Session carrying the auth headers
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        page_size: int = MAX_PAGE_SIZE,
        timeout: float = 30.0,
        retry: dict[str, Any] | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not api_key:
            raise ValueError("api_key is required")

        self.base_url = base_url.rstrip("/")
        self.page_size = min(page_size, MAX_PAGE_SIZE)
        self.timeout = timeout
        self.retry = {**RetryStrategy.ITGLUE, **(retry or {})}
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "x-api-key": api_key,
                "Content-Type": JSONAPI_MEDIA_TYPE,
                "Accept": JSONAPI_MEDIA_TYPE,
            }
        )
        self._sleep = sleep

    def url_for(self, path: str) -> str:
        """Resolve a resource path against base_url; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send one API request, retrying rate-limit and server errors.

        Args:
            method: HTTP method
            path: Resource path (e.g. "organizations") or absolute URL
            params: Query parameters
            payload: JSON:API document to send as the body

        Returns:
            Parsed response document ({} for empty responses)

        Raises:
            ITGlueAPIError: On a non-retryable failure, or once retries are exhausted
        """
        url = self.url_for(path)
        send = retry_with_backoff(
            **self.retry,
            retryable_exceptions=(ITGlueAPIError,),
            retry_if=lambda e: e.retryable,
            on_retry=self._log_retry,
            sleep=self._sleep,
        )(self._send)

        try:
            return send(method, url, params, payload)
        except RetryableError as e:
            last = e.original_error
            raise ITGlueAPIError(
                method,
                url,
                last.error_message,
                status_code=last.status_code,
                body=last.body,
                retry_count=e.max_attempts - 1,
                retryable=True,
            ) from last

    def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        payload: dict[str, Any] | None,
    ) -> dict[str, Any]:
        data = json.dumps(payload) if payload is not None else None
        try:
            response = self.session.request(
                method, url, params=params, data=data, timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise ITGlueAPIError(method, url, redact_sensitive(str(e)), retryable=True) from e
        except requests.RequestException as e:
            raise ITGlueAPIError(
                method, url, redact_sensitive(str(e)), retryable=is_retryable_error(e)
            ) from e

        status = response.status_code
        if not 200 <= status < 300:
            raise ITGlueAPIError(
                method,
                url,
                _error_detail(response),
                status_code=status,
                body=_body_excerpt(response),
                retryable=is_retryable_status(status),
            )

        if status == 204 or not response.content:
            return {}

        try:
            document = response.json()
        except ValueError as e:
            raise ITGlueAPIError(
                method,
                url,
                "malformed JSON in response",
                status_code=status,
                body=_body_excerpt(response),
            ) from e

        if not isinstance(document, dict):
            raise ITGlueAPIError(
                method,
                url,
                f"expected a JSON object, got {type(document).__name__}",
                status_code=status,
                body=_body_excerpt(response),
            )
        return document

    def _log_retry(self, error: Exception, attempt: int, max_attempts: int) -> None:
        logger.warning(f"Attempt {attempt}/{max_attempts} failed: {error.message}. Retrying...")

    def iter_pages(
        self,
        path: str,
        filters: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Iterator[dict[str, Any]]:
        """
        Yield each page of a collection, following links.next until it runs out.

        The first request carries the filters and page size; subsequent
        requests use the cursor URL verbatim since it already encodes them.
        """
        query: dict[str, Any] | None = build_params(filters, page_size=self.page_size)
        query.update(params or {})
        next_url: str | None = self.url_for(path)
        seen: set[str] = set()

        while next_url:
            if next_url in seen:
                logger.warning(f"Pagination cursor repeated, stopping: {next_url}")
                return
            seen.add(next_url)

            document = self.request("GET", next_url, params=query)
            yield document

            links = document.get("links") or {}
            next_url = links.get("next") or None
            if next_url:
                next_url = self.url_for(next_url)
            query = None

    def get_all(
        self,
        path: str,
        filters: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> list[Resource]:
        """Fetch every page of a collection and concatenate the data arrays."""
        resources: list[Resource] = []
        pages = 0
        for document in self.iter_pages(path, filters=filters, params=params):
            pages += 1
            data = document.get("data") or []
            if isinstance(data, dict):
                data = [data]
            resources.extend(Resource.from_json(item) for item in data)

        logger.debug(f"Fetched {len(resources)} record(s) from {path} in {pages} page(s)")
        return resources

    def get(self, path: str, params: dict[str, Any] | None = None) -> Resource:
        """Fetch a single resource."""
        document = self.request("GET", path, params=params)
        return self._single(document, "GET", path)

    def create(self, path: str, resource_type: str, attributes: dict[str, Any]) -> Resource:
        """Create a resource and return it as stored by IT Glue."""
        document = self.request("POST", path, payload=to_payload(resource_type, attributes))
        return self._single(document, "POST", path)

    def update(
        self,
        path: str,
        resource_type: str,
        attributes: dict[str, Any],
        resource_id: str | int | None = None,
    ) -> Resource:
        """PATCH attributes onto an existing resource."""
        document = self.request(
            "PATCH", path, payload=to_payload(resource_type, attributes, resource_id)
        )
        return self._single(document, "PATCH", path)

    def bulk_delete(
        self,
        path: str,
        resource_type: str,
        ids: Iterable[str | int],
        batch_size: int = 100,
    ) -> int:
        """
        Delete resources by id using IT Glue's bulk DELETE endpoint.

        Returns:
            Number of ids submitted for deletion
        """
        ids = [str(i) for i in ids]
        for start in range(0, len(ids), batch_size):
            batch = ids[start : start + batch_size]
            self.request("DELETE", path, payload=to_bulk_payload(resource_type, batch))
            logger.info(f"Deleted {len(batch)} {resource_type} record(s)")
        return len(ids)

    def _single(self, document: dict[str, Any], method: str, path: str) -> Resource:
        data = document.get("data")
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise ITGlueAPIError(method, self.url_for(path), "response contained no data")
        return Resource.from_json(data)
