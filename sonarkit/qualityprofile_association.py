"""Association of a quality profile with a project."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from sonarkit.core import ResourceData, SonarClient, SonarError, ValidationError

_REQUIRED = ("quality_profile", "project", "language")
_MAX_LENGTH = {"quality_profile": 100, "project": 100}


@dataclass
class ProjectAssociationResult:
    """One project listed for a quality profile."""

    id: str = ""
    name: str = ""
    key: str = ""
    selected: bool = False


def _decode(response: Any, context: str) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        raise SonarError(f"{context}: failed to decode json: {exc}") from exc


def validate(data: ResourceData) -> None:
    """Check the configuration against the resource schema."""
    for key in _REQUIRED:
        if data.values.get(key) is None:
            raise ValidationError(f"{key}: required field is not set")
    for key, limit in _MAX_LENGTH.items():
        if len(data.get(key)) > limit:
            raise ValidationError(f"{key}: expected length between 0 and {limit}")


def _association_params(data: ResourceData) -> dict[str, str]:
    return {
        "language": data.get("language"),
        "project": data.get("project"),
        "qualityProfile": data.get("quality_profile"),
    }


def create(data: ResourceData, client: SonarClient) -> None:
    """Associate the quality profile with the project."""
    validate(data)
    client.request(
        "POST",
        "/api/qualityprofiles/add_project",
        _association_params(data),
        HTTPStatus.NO_CONTENT,
    )
    data.id = f"{data.get('quality_profile')}/{data.get('project')}/{data.get('language')}"
    read(data, client)


def read(data: ResourceData, client: SonarClient) -> None:
    """Refresh the association from the server; raise if it no longer exists."""
    id_parts = data.id.split("/")
    if len(id_parts) < 2:
        raise SonarError(f"quality profile association read: malformed id: {data.id}")

    response = client.request("GET", "/api/qualityprofiles/search", None, HTTPStatus.OK)
    profiles = _decode(response, "quality profile association read").get("profiles") or []

    language_wanted = id_parts[2] if len(id_parts) == 3 else data.get("language")
    profile_key = language = profile_name = ""
    for profile in profiles:
        if profile.get("name") == id_parts[0] and profile.get("language") == language_wanted:
            profile_key = profile.get("key", "")
            language = profile.get("language", "")
            profile_name = profile.get("name", "")

    response = client.request(
        "GET", "/api/qualityprofiles/projects", {"key": profile_key}, HTTPStatus.OK
    )
    payload = _decode(response, "quality profile association read")
    results = [
        ProjectAssociationResult(
            id=item.get("id", ""),
            name=item.get("name", ""),
            key=item.get("key", ""),
            selected=bool(item.get("selected", False)),
        )
        for item in payload.get("results") or []
    ]
    for result in results:
        if result.key == id_parts[1]:
            data.set("project", result.key)
            data.set("quality_profile", profile_name)
            data.set("language", language)
            return
    raise SonarError(
        f"quality profile association read: failed to find project association: {data.id}"
    )


def delete(data: ResourceData, client: SonarClient) -> None:
    """Remove the association of the quality profile with the project."""
    try:
        client.request(
            "POST",
            "/api/qualityprofiles/remove_project",
            _association_params(data),
            HTTPStatus.NO_CONTENT,
        )
    except SonarError as exc:
        raise SonarError(
            f"quality profile association delete: failed to delete quality profile: {exc}"
        ) from exc


def import_state(data: ResourceData, client: SonarClient) -> list[ResourceData]:
    """Load an existing association by its id."""
    read(data, client)
    return [data]