"""
Archive-It API Client

This module handles communication with the Archive-It partner API (collection
metadata, WASAPI file listing, crawl and seed reports) and with the
Archive-It Wayback replay service.
"""

import requests
from requests.auth import HTTPBasicAuth
from typing import Dict, Optional, Any
import logging

from .errors import AuthError, NetworkError


class ArchiveItClient:
    """
    Client for the Archive-It APIs.

    Holds the credentials and a shared HTTP session; it keeps no other
    state, so it can be used from several batch workers at once.
    """

    API_URL = "https://partner.archive-it.org"
    PLAYBACK_URL = "https://wayback.archive-it.org"
    USER_AGENT = "wacz-preparator/1.0 (Archive-It collection export)"

    def __init__(self,
                 username: str,
                 password: str,
                 timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the client.

        Args:
            username: Archive-It API username
            password: Archive-It API password
            timeout: Per-request timeout in seconds (None: no timeout)
            session: HTTP session to use (a new `requests.Session` by default)
        """
        self.auth = HTTPBasicAuth(username, password)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({'User-Agent': self.USER_AGENT})

    def api_url(self, path: str) -> str:
        """Absolute partner API URL for a path such as "/api/collection"."""
        return f"{self.API_URL}/{path.lstrip('/')}"

    def request(self,
                method: str,
                url: str,
                params: Optional[Dict[str, Any]] = None,
                authenticated: bool = True,
                stream: bool = False) -> requests.Response:
        """
        Make a request, wrapping transport failures in `NetworkError`.

        The status code is left to the caller: each endpoint treats
        non-success responses differently.

        Raises:
            NetworkError: If the request could not be completed
        """
        self.logger.debug(f"{method} {url} params={params}")
        try:
            return self.session.request(
                method,
                url,
                params=params,
                auth=self.auth if authenticated else None,
                stream=stream,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}", url=url) from e

    def head(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self.request('HEAD', url, params=params)

    def get(self,
            url: str,
            params: Optional[Dict[str, Any]] = None,
            authenticated: bool = True,
            stream: bool = False) -> requests.Response:
        return self.request('GET', url, params=params, authenticated=authenticated, stream=stream)

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None, authenticated: bool = True) -> Any:
        """
        GET a JSON document, requiring a 200 response.

        Raises:
            AuthError: On 401 / 403
            NetworkError: On any other non-200 status, transport failure or invalid JSON
        """
        response = self.get(url, params=params, authenticated=authenticated)
        self.raise_for_status(response, url)
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON returned by {url}: {e}", url=url) from e

    @staticmethod
    def raise_for_status(response: requests.Response, url: str):
        """Raise the matching error unless the response status is 200."""
        status = response.status_code
        if status == 200:
            return
        if status in (401, 403):
            raise AuthError(f"Archive-It API responded with {status} (check credentials)", status_code=status, url=url)
        raise NetworkError(f"Archive-It API responded with {status} for {url}", status_code=status, url=url)

    def close(self):
        """Close the HTTP session."""
        self.session.close()
