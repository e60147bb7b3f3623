"""User Service API client.

A thin wrapper around the HTTP API exposed by ``user_service_api``.
The client uses the ``requests`` library internally and exposes one
method per operation:

* :meth:`list_users` – fetch a page of users, optionally filtered.
* :meth:`create_user` – create a new user.
* :meth:`update_user` – change some fields of an existing user.
* :meth:`delete_user` – remove a user.

Every method returns a tuple ``(data, error)``.  On success ``error``
is ``None``; on failure ``data`` is ``None`` (or empty) and ``error``
is a dictionary with ``status_code``, ``message`` and, for input
validation failures, the per‑field ``errors`` reported by the server.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

USERS_PATH = "/api/users"


class UserServiceClient:
    """Client for the user resource of the User Service API."""

    def __init__(
        self,
        *,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ) -> None:
        """Initialise the API client.

        Args:
            base_url: Base URL of the service, e.g. ``http://localhost:3001``.
            session: Optional requests session.  If not supplied a
                session will be created automatically.
            timeout: Timeout in seconds applied to every request.
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self, method: str, path: str, *, params: Dict[str, Any] | None = None,
        json_body: Any | None = None
    ) -> Tuple[Optional[Any], Optional[Dict[str, Any]]]:
        """Perform an HTTP request to the API.

        Args:
            method: HTTP method (``GET``, ``POST``, ``PUT``, ``DELETE``).
            path: Path relative to :attr:`base_url`.
            params: Query parameters to include in the request.
            json_body: JSON body to send with the request.
        Returns:
            A tuple ``(data, error)`` as described in the module docstring.
        """
        url = f"{self.base_url}{path}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            error: Dict[str, Any] = {"status_code": status, "message": ""}
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                except ValueError:
                    error["message"] = exc.response.text
                else:
                    error["message"] = (
                        err_json.get("error") or err_json.get("message") or str(err_json)
                    )
                    if err_json.get("errors"):
                        error["errors"] = err_json["errors"]
            if not error["message"]:
                error["message"] = str(exc)
            logger.error("API request failed (%s): %s", status, error["message"])
            return None, error
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "message": str(exc)}

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------
    def list_users(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Retrieve one page of users.

        Returns:
            A tuple ``(page, error)`` where ``page`` is the list envelope
            ``{page, limit, total, totalPages, data}``.
        """
        params = {
            key: value
            for key, value in (("page", page), ("limit", limit), ("search", search))
            if value is not None
        }
        return self._request("GET", USERS_PATH, params=params or None)

    def iter_users(self, limit: int = 50, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """Collect every user by walking the pages in order.

        Stops at the first failing request and returns what was
        collected so far.
        """
        users: List[Dict[str, Any]] = []
        page = 1
        while True:
            data, error = self.list_users(page=page, limit=limit, search=search)
            if error or not data:
                break
            users.extend(data.get("data", []))
            if page >= data.get("totalPages", 0):
                break
            page += 1
        return users

    def create_user(
        self, payload: Dict[str, Any]
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Create a user and return the stored record."""
        data, error = self._request("POST", USERS_PATH, json_body=payload)
        if error:
            return None, error
        return (data or {}).get("data"), None

    def update_user(
        self, user_id: str, payload: Dict[str, Any]
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """Update the given fields of a user and return the new record."""
        data, error = self._request("PUT", f"{USERS_PATH}/{user_id}", json_body=payload)
        if error:
            return None, error
        return (data or {}).get("data"), None

    def delete_user(self, user_id: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """Delete a user.

        Returns:
            A tuple ``(success, error)``.
        """
        _, error = self._request("DELETE", f"{USERS_PATH}/{user_id}")
        if error:
            return False, error
        return True, None
