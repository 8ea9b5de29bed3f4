"""Global and project webhooks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from sonarkit.core import ResourceData, SonarClient, SonarError

logger = logging.getLogger(__name__)


@dataclass
class Webhook:
    """A webhook as returned by the webhooks API."""

    key: str = ""
    name: str = ""
    url: str = ""
    secret: str = ""

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> Webhook:
        return cls(
            key=payload.get("key", ""),
            name=payload.get("name", ""),
            url=payload.get("url", ""),
            secret=payload.get("secret", ""),
        )


def _decode(response: Any, context: str) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        raise SonarError(f"{context}: failed to decode json: {exc}") from exc


def create(data: ResourceData, client: SonarClient) -> None:
    """Create the webhook, then refresh it from the server."""
    path = "/api/webhooks/create"
    params = {"name": data.get("name"), "url": data.get("url")}
    secret, has_secret = data.get_ok("secret")
    if has_secret:
        params["secret"] = secret
    project, has_project = data.get_ok("project")
    if has_project:
        params["project"] = project

    try:
        response = client.request("POST", path, params, HTTPStatus.OK)
    except SonarError as exc:
        raise SonarError(f"webhook create: failed to call {path}: {exc}") from exc

    webhook = _decode(response, "webhook create").get("webhook")
    if not webhook:
        raise SonarError("webhook create: response didn't contain the webhook")
    data.id = Webhook.from_json(webhook).key
    read(data, client)


def read(data: ResourceData, client: SonarClient) -> None:
    """Find the webhook among all listed ones; raise if it is not there."""
    path = "/api/webhooks/list"
    project, has_project = data.get_ok("project")
    params = {"project": project} if has_project else None

    try:
        response = client.request("GET", path, params, HTTPStatus.OK)
    except SonarError as exc:
        raise SonarError(f"webhook read: failed to call {path}: {exc}") from exc

    payload = _decode(response, "webhook read")
    for webhook in map(Webhook.from_json, payload.get("webhooks") or []):
        logger.debug("webhook key %r vs %r", webhook.key, data.id)
        if webhook.key == data.id:
            data.set("name", webhook.name)
            data.set("url", webhook.url)
            # The response carries neither the project nor the secret, so the
            # configured values are kept as they are.
            return
    raise SonarError(f"webhook read: failed to find webhook with key {data.id}")


def update(data: ResourceData, client: SonarClient) -> None:
    """Push the webhook's name, URL and secret, then refresh it."""
    params = {"webhook": data.id, "name": data.get("name"), "url": data.get("url")}
    project = data.get("project")
    if project:
        params["project"] = project
    secret, has_secret = data.get_ok("secret")
    if has_secret:
        params["secret"] = secret

    try:
        client.request("POST", "/api/webhooks/update", params, HTTPStatus.NO_CONTENT)
    except SonarError as exc:
        raise SonarError(f"webhook update: failed to update webhook: {exc}") from exc
    read(data, client)


def delete(data: ResourceData, client: SonarClient) -> None:
    """Delete the webhook."""
    try:
        client.request(
            "POST", "/api/webhooks/delete", {"webhook": data.id}, HTTPStatus.NO_CONTENT
        )
    except SonarError as exc:
        raise SonarError(f"webhook delete: failed to delete webhook: {exc}") from exc


def import_state(data: ResourceData, client: SonarClient) -> list[ResourceData]:
    """Load an existing webhook by an id of the form key or key/project."""
    key, sep, project = data.id.partition("/")
    if sep:
        logger.debug("import id %r is in format key/project: %s/%s", data.id, key, project)
        data.set("project", project)
    else:
        logger.debug("import id %r is in format key: %s", data.id, key)
    data.id = key
    read(data, client)
    return [data]