"""HTTP client for the admin endpoints.

Wraps a ``requests.Session`` so the signed session cookie set by ``/signin``
rides along on every later call.

Error contract:
  - JSON error envelopes (4xx/5xx with ``{"success": false, "message": ...}``)
    come back as plain dicts from the save-style calls, so callers can show
    the server's message.
  - Network failures raise ``requests.RequestException``.
  - A rejected sign-in raises :class:`SignInFailed`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import requests

DEFAULT_TIMEOUT = 30.0


class SignInFailed(RuntimeError):
    pass


class AdminApiClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _envelope(response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and "message" in payload:
            payload.setdefault("success", response.ok)
            return payload
        response.raise_for_status()
        return {"success": response.ok, "message": response.text}

    def sign_in(self, username: str, password: str) -> None:
        response = self.session.post(
            self._url("/signin"),
            data={"username": username, "password": password},
            allow_redirects=False,
            timeout=self.timeout,
        )
        if response.status_code in (302, 303):
            return
        if response.status_code == 429:
            retry = response.headers.get("Retry-After", "later")
            raise SignInFailed(f"Too many sign-in attempts; retry after {retry}s")
        raise SignInFailed("Authentication failed")

    def sign_out(self) -> Dict[str, Any]:
        return self._envelope(self.session.post(self._url("/api/signout"), timeout=self.timeout))

    def fetch_addresses(self) -> List[Dict[str, Any]]:
        response = self.session.get(self._url("/api/addresses"), timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, list):
            raise ValueError(f"Expected list from GET /api/addresses, got: {type(data).__name__}")
        return data

    def save_addresses(self, addresses: List[Dict[str, Any]]) -> Dict[str, Any]:
        response = self.session.post(
            self._url("/api/addresses"), json={"addresses": addresses}, timeout=self.timeout
        )
        return self._envelope(response)

    def geocode(self, text: str) -> Optional[Tuple[float, float]]:
        response = self.session.get(self._url("/api/geocode"), params={"q": text}, timeout=self.timeout)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        data = response.json()
        return float(data["lat"]), float(data["lon"])

    def fetch_rules(self) -> str:
        response = self.session.get(self._url("/api/rules"), timeout=self.timeout)
        response.raise_for_status()
        return response.json().get("rules", "")

    def save_rules(self, rules: str) -> Dict[str, Any]:
        return self._envelope(
            self.session.post(self._url("/api/rules"), json={"rules": rules}, timeout=self.timeout)
        )

    def change_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        response = self.session.post(
            self._url("/api/change-password"),
            json={"currentPassword": current_password, "newPassword": new_password},
            timeout=self.timeout,
        )
        return self._envelope(response)
