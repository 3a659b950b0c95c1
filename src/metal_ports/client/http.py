"""Low-level HTTP client wrapper for the Metal JSON API."""

from __future__ import annotations

import importlib.metadata
import json
import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from metal_ports.client.errors import (
    MetalParseError,
    MetalRequestError,
    MetalResponseError,
)
from metal_ports.model.config import MetalClientConfig

logger = logging.getLogger(__name__)

try:
    _VERSION: str = importlib.metadata.version("metal-ports")
except importlib.metadata.PackageNotFoundError:
    _VERSION = "0.0.0"

_USER_AGENT: str = f"metal-ports/{_VERSION}"
_MEDIA_TYPE: str = "application/json"


def _normalise_base_url(url: str) -> str:
    """Ensure the URL has a scheme and no trailing slash."""
    url = url.rstrip("/")
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


class MetalHTTP:
    """Low-level HTTP wrapper around :class:`requests.Session`.

    Handles authentication headers, a default ``User-Agent``, timeout, TLS
    verification, JSON decoding, and maps transport/HTTP errors to
    :mod:`.errors` types.  GET requests answered with a 5xx are retried;
    mutating requests are sent exactly once.

    Args:
        config: Connection settings and credentials.
    """

    def __init__(self, config: MetalClientConfig) -> None:
        self.base_url: str = _normalise_base_url(config.base_url)
        self.timeout_s: float = config.timeout_s
        self.verify_tls: bool = config.verify_tls
        self._session: requests.Session = requests.Session()
        self._session.headers.update(
            {
                "User-Agent": _USER_AGENT,
                "Accept": _MEDIA_TYPE,
                "Content-Type": _MEDIA_TYPE,
                "X-Auth-Token": config.credentials.token,
            }
        )
        if config.credentials.consumer_token:
            self._session.headers["X-Consumer-Token"] = config.credentials.consumer_token

        retry = Retry(
            total=config.max_retries,
            backoff_factor=0.5,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=frozenset({"GET"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(
        self,
        path: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send an HTTP GET to *path* and return the decoded JSON object.

        Raises:
            MetalRequestError: On any transport-level failure.
            MetalResponseError: On a non-2xx HTTP status code.
            MetalParseError: If the body is not a JSON object.
        """
        return self._request("GET", path, params=params)

    def post(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send an HTTP POST with a JSON *body* to *path*.

        Args:
            path: URL path relative to :attr:`base_url`.
            body: Optional JSON body.
            params: Optional query-string parameters.

        Returns:
            The decoded JSON object (empty for a ``204``).

        Raises:
            MetalRequestError: On any transport-level failure.
            MetalResponseError: On a non-2xx HTTP status code.
            MetalParseError: If the body is not a JSON object.
        """
        return self._request("POST", path, params=params, body=body)

    def delete(self, path: str) -> dict[str, Any]:
        """Send an HTTP DELETE to *path*."""
        return self._request("DELETE", path)

    def close(self) -> None:
        """Close the underlying :class:`requests.Session`."""
        self._session.close()

    def __enter__(self) -> MetalHTTP:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = self.base_url + path
        logger.debug("%s %s params=%s body=%s", method, url, params, body)
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                json=body,
                timeout=self.timeout_s,
                verify=self.verify_tls,
            )
        except requests.exceptions.RequestException as exc:
            raise MetalRequestError(url, exc) from exc
        logger.debug("%s %s -> HTTP %d", method, url, resp.status_code)
        self._raise_for_status(resp)
        return self._parse_json(resp, url)

    @staticmethod
    def _raise_for_status(resp: requests.Response) -> None:
        if resp.ok:
            return
        errors: list[str] = []
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            errors.extend(str(e) for e in payload.get("errors") or [])
            if payload.get("error"):
                errors.append(str(payload["error"]))
        raise MetalResponseError(resp.status_code, resp.url, errors)

    @staticmethod
    def _parse_json(resp: requests.Response, url: str) -> dict[str, Any]:
        """Decode the body as a JSON object, raising :exc:`.MetalParseError` on failure."""
        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            result = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise MetalParseError(
                f"Non-JSON response from {url!r}: {resp.text[:200]!r}"
            ) from exc
        if not isinstance(result, dict):
            raise MetalParseError(f"Expected a JSON object from {url!r}, got {type(result).__name__}")
        return result
