"""Local and external SonarQube users."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from sonarkit.core import ResourceData, SonarClient, SonarError

_SEARCH_PAGE_SIZE = "500"


@dataclass
class User:
    """A user as returned by the users API."""

    login: str = ""
    name: str = ""
    email: str = ""
    permissions: list[str] = field(default_factory=list)
    is_active: bool = False
    is_local: bool = False

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> User:
        return cls(
            login=payload.get("login", ""),
            name=payload.get("name", ""),
            email=payload.get("email", ""),
            permissions=list(payload.get("permissions") or []),
            is_active=bool(payload.get("active", False)),
            is_local=bool(payload.get("local", False)),
        )


def _decode(response: Any, context: str) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        raise SonarError(f"{context}: failed to decode json: {exc}") from exc


def create(data: ResourceData, client: SonarClient) -> None:
    """Create the user, then refresh it from the server."""
    is_local = data.values.get("is_local")
    if is_local is None:
        is_local = True
        data.set("is_local", is_local)

    params: dict[str, Any] = {
        "login": data.get("login_name"),
        "name": data.get("name"),
        "local": bool(is_local),
    }
    password, has_password = data.get_ok("password")
    if has_password:
        params["password"] = password
    email, has_email = data.get_ok("email")
    if has_email:
        params["email"] = email

    try:
        response = client.request("POST", "/api/users/create", params, HTTPStatus.OK)
    except SonarError as exc:
        raise SonarError(f"error creating Sonarqube user: {exc}") from exc

    payload = _decode(response, "user create")
    user = User.from_json(payload.get("user") or {})
    if not user.login:
        raise SonarError("user create: create response didn't contain the user login")
    data.id = user.login
    read(data, client)


def read(data: ResourceData, client: SonarClient) -> None:
    """Refresh the user from the server; raise if it cannot be found."""
    try:
        response = client.request(
            "GET",
            "/api/users/search",
            {"ps": _SEARCH_PAGE_SIZE, "q": data.id},
            HTTPStatus.OK,
        )
    except SonarError as exc:
        raise SonarError(f"error reading Sonarqube user: {exc}") from exc

    payload = _decode(response, "user read")
    for user in map(User.from_json, payload.get("users") or []):
        if user.login == data.id:
            data.set("login_name", user.login)
            data.set("name", user.name)
            data.set("email", user.email)
            data.set("is_local", user.is_local)
            return
    raise SonarError(f"user read: failed to find user: {data.id}")


def update(data: ResourceData, client: SonarClient) -> None:
    """Push a changed e-mail address or password, then refresh the user."""
    if data.has_change("email"):
        try:
            client.request(
                "POST",
                "/api/users/update",
                {"login": data.id, "email": data.get("email")},
                HTTPStatus.OK,
            )
        except SonarError as exc:
            raise SonarError(f"error updating Sonarqube user: {exc}") from exc

    if data.has_change("password"):
        try:
            client.request(
                "POST",
                "/api/users/change_password",
                {"login": data.id, "password": data.get("password")},
                HTTPStatus.NO_CONTENT,
            )
        except SonarError as exc:
            raise SonarError(f"error updating Sonarqube user: {exc}") from exc

    read(data, client)


def delete(data: ResourceData, client: SonarClient) -> None:
    """Deactivate the user, anonymizing it if the client is set up to."""
    try:
        client.request(
            "POST",
            "/api/users/deactivate",
            {"login": data.id, "anonymize": bool(client.anonymize_users)},
            HTTPStatus.OK,
        )
    except SonarError as exc:
        raise SonarError(f"error deleting (deactivating) Sonarqube user: {exc}") from exc


def import_state(data: ResourceData, client: SonarClient) -> list[ResourceData]:
    """Load an existing user by its login."""
    read(data, client)
    return [data]