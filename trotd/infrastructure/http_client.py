"""Shared HTTP client for the hosting APIs with retry logic."""

import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class HttpError(Exception):
    """Raised when a request fails after retries or returns an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class HttpClient:
    """Thin wrapper over ``requests.Session`` with exponential backoff."""

    MAX_RETRIES = 3
    RETRY_DELAY_SECONDS = 0.5
    USER_AGENT = "trotd (trending repositories of the day)"

    def __init__(self, session: Optional[requests.Session] = None, max_retries: Optional[int] = None):
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", self.USER_AGENT)
        self.max_retries = max_retries if max_retries is not None else self.MAX_RETRIES

    def request(
        self,
        method: str,
        url: str,
        timeout: float,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """
        Execute a request, retrying transport errors and 5xx responses.

        Args:
            method: HTTP method
            url: Absolute URL
            timeout: Per-attempt timeout in seconds
            params: Query parameters
            headers: Extra headers for this request

        Returns:
            Successful response (status < 400)

        Raises:
            HttpError: If the request fails after all retries or returns 4xx
        """
        last_error: Optional[str] = None

        for attempt in range(self.max_retries):
            try:
                response = self.session.request(
                    method, url, params=params, headers=headers, timeout=timeout
                )
            except requests.exceptions.RequestException as e:
                last_error = str(e)
            else:
                if response.status_code < 400:
                    return response
                if response.status_code < 500:
                    raise HttpError(
                        f"{method} {url} returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                last_error = f"HTTP {response.status_code}"

            if attempt < self.max_retries - 1:
                delay = self.RETRY_DELAY_SECONDS * (2 ** attempt)
                logger.debug(
                    f"Request to {url} failed (attempt {attempt + 1}/{self.max_retries}): "
                    f"{last_error}. Retrying in {delay}s..."
                )
                time.sleep(delay)

        raise HttpError(f"{method} {url} failed after {self.max_retries} attempts: {last_error}")

    def get_json(
        self,
        url: str,
        timeout: float,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        response = self.request("GET", url, timeout, params=params, headers=headers)
        return response.json()
