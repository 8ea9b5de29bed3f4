"""HTTP client, resource state and small helpers shared by all resources."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import requests


class SonarError(Exception):
    """Raised when a SonarQube call or a resource operation fails."""


class ValidationError(SonarError):
    """Raised when a resource configuration does not match its schema."""


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _encode_pairs(params: Any) -> list[tuple[str, str]]:
    """Flatten query parameters into pairs sorted by key, like a form encoder."""
    if params is None:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    pairs: list[tuple[str, str]] = []
    for key, value in items:
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _text(item)) for item in value)
        else:
            pairs.append((key, _text(value)))
    return sorted(pairs, key=lambda pair: pair[0])


class SonarClient:
    """A thin client for the SonarQube web API."""

    def __init__(
        self,
        base_url: str,
        *,
        auth: Any = None,
        session: requests.Session | None = None,
        anonymize_users: bool = False,
    ) -> None:
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()
        if auth is not None:
            self.session.auth = auth
        self.anonymize_users = anonymize_users

    def url(self, path: str) -> str:
        """Return the full URL of an API path below the base URL."""
        parts = urlsplit(self.base_url)
        base_path = parts.path[:-1] if parts.path.endswith("/") else parts.path
        return urlunsplit((parts.scheme, parts.netloc, base_path + path, "", ""))

    def request(
        self,
        method: str,
        path: str,
        params: Any = None,
        expected_status: int = HTTPStatus.OK,
    ) -> requests.Response:
        """Send a request and raise SonarError unless the expected status comes back."""
        url = self.url(path)
        try:
            response = self.session.request(method, url, params=_encode_pairs(params))
        except requests.RequestException as exc:
            raise SonarError(f"{method} {url}: {exc}") from exc
        if response.status_code != expected_status:
            raise SonarError(
                f"{method} {url}: expected status {int(expected_status)}, "
                f"got {response.status_code}: {response.text}"
            )
        return response


@dataclass
class ResourceData:
    """Configured and stored attributes of one resource, plus its identifier."""

    values: dict[str, Any] = field(default_factory=dict)
    id: str = ""
    previous: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Return the attribute, or an empty string when it is unset."""
        value = self.values.get(key)
        return "" if value is None else value

    def get_ok(self, key: str) -> tuple[Any, bool]:
        """Return the attribute and whether it holds a non-empty value."""
        value = self.get(key)
        return value, bool(value)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def has_change(self, key: str) -> bool:
        """Tell whether the attribute differs from its previous value."""
        return self.values.get(key) != self.previous.get(key)


def string_slices_equal(a: list[str], b: list[str], ignore_order: bool) -> bool:
    """Compare two string lists, optionally ignoring their order."""
    if ignore_order:
        return sorted(a) == sorted(b)
    return list(a) == list(b)