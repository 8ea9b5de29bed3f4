"""External identity of a non-local SonarQube user.

The API offers no way to read the identity back, so reading and deleting
never contact the server.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any

from sonarkit.core import ResourceData, SonarClient, SonarError
from sonarkit.users import User


def _decode(response: Any) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        raise SonarError(f"Failed to decode json: {exc}") from exc


def is_local(login: str, client: SonarClient) -> bool:
    """Tell whether the user with this login is a local user."""
    try:
        response = client.request("GET", "/api/users/search", {"q": login}, HTTPStatus.OK)
    except SonarError as exc:
        raise SonarError(f"Error reading Sonarqube user: {exc}") from exc

    payload = _decode(response)
    for user in map(User.from_json, payload.get("users") or []):
        if user.login == login:
            return user.is_local
    raise SonarError(f"Failed to find user: {login}")


def create(data: ResourceData, client: SonarClient) -> None:
    """Set the identity provider of an external user."""
    login = data.get("login_name")
    try:
        local = is_local(login, client)
    except SonarError as exc:
        raise SonarError(f"Error updating Sonarqube user: {exc}") from exc
    if local:
        raise SonarError(
            f"Error setting external identity: Sonarqube user '{login}' is not 'external'"
        )

    params = {
        "login": login,
        "newExternalIdentity": data.get("external_identity"),
        "newExternalProvider": data.get("external_provider"),
    }
    try:
        client.request(
            "POST", "/api/users/update_identity_provider", params, HTTPStatus.NO_CONTENT
        )
    except SonarError as exc:
        raise SonarError(f"Error updating Sonarqube user: {exc}") from exc

    data.id = login
    data.set("external_identity", data.get("external_identity"))
    data.set("external_provider", data.get("external_provider"))


def read(data: ResourceData, client: SonarClient) -> None:
    """Keep the stored state; only the login is taken from the resource id."""
    if data.id:
        data.set("login_name", data.id)


def delete(data: ResourceData, client: SonarClient) -> None:
    """Forget the resource locally; the identity stays on the server."""
    data.id = ""