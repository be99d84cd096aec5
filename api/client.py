"""
HTTP client for the bug tracker REST API.
One call in, one decoded payload or one classified failure out. No retries, no backoff.
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

import requests

from .errors import ApiError, NetworkError, Unauthorized

logger = logging.getLogger(__name__)


def _decode_error_body(resp) -> Dict[str, Any]:
    """Return the error body as a dict, falling back to {'message': text} for non-JSON bodies."""
    try:
        data = resp.json()
    except ValueError:
        text = getattr(resp, 'text', '') or ''
        if text:
            logger.error("API returned non-JSON response: %s", text[:500])
            return {'message': text}
        return {}
    return data if isinstance(data, dict) else {'details': data}


def _decode_success_body(resp) -> Any:
    try:
        return resp.json()
    except ValueError:
        # 204 or a plain-text reply
        text = getattr(resp, 'text', '') or ''
        return text or None


def _error_message(data: Dict[str, Any], status: int, status_text: str) -> str:
    return data.get('message') or data.get('error') or f"API Error: {status} {status_text}".rstrip()


class ApiClient:
    """
    Thin wrapper around requests for the tracker API.

    The session store is consulted on every call: its token becomes the bearer credential,
    and a 401 from any endpoint logs it out before Unauthorized is raised.
    """

    def __init__(
        self,
        base_url: str,
        session=None,
        timeout: Optional[float] = None,
        on_unauthorized: Optional[Callable[[str], None]] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.session = session
        self.timeout = timeout
        self.on_unauthorized = on_unauthorized

    def _headers(self, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if extra:
            headers.update(extra)
        token = self.session.token if self.session is not None else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _handle_unauthorized(self, resp):
        logger.warning("Session expired (401), clearing session")
        if self.session is not None:
            self.session.logout()
        data = _decode_error_body(resp)
        err = Unauthorized(getattr(resp, 'reason', '') or 'Unauthorized', raw_body=getattr(resp, 'text', None), data=data)
        if self.on_unauthorized is not None:
            self.on_unauthorized(err.redirect_to)
        raise err

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform one HTTP call and return the decoded JSON body verbatim.

        :raises NetworkError: no response was received.
        :raises Unauthorized: the server answered 401 (session already cleared).
        :raises ApiError: any other non-2xx status.
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        all_headers = self._headers(headers)
        data = json.dumps(body) if body is not None else None
        logger.debug("API request: %s %s (auth=%s)", method, url, "Authorization" in all_headers)
        try:
            resp = requests.request(method, url, headers=all_headers, data=data, params=params or None, timeout=self.timeout)
        except requests.RequestException as ex:
            logger.error("API request failed: %s %s: %s", method, url, ex)
            raise NetworkError(f"Network error: {ex}") from ex

        status = resp.status_code
        logger.debug("API response: %s %s -> %s", method, url, status)

        if status == 401:
            self._handle_unauthorized(resp)

        if not 200 <= status < 300:
            status_text = getattr(resp, 'reason', '') or ''
            err_data = _decode_error_body(resp)
            message = _error_message(err_data, status, status_text)
            logger.error("API error: %s %s status=%s message=%s", method, path, status, message)
            raise ApiError(status, status_text, message, raw_body=getattr(resp, 'text', None), data=err_data)

        return _decode_success_body(resp)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request(path, "GET", params=params)

    def post(self, path: str, body: Any = None) -> Any:
        return self.request(path, "POST", body=body)

    def put(self, path: str, body: Any = None) -> Any:
        return self.request(path, "PUT", body=body)

    def patch(self, path: str, body: Any = None) -> Any:
        return self.request(path, "PATCH", body=body)

    def delete(self, path: str) -> Any:
        return self.request(path, "DELETE")


__all__ = ["ApiClient"]
