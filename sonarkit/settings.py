"""Global and component settings of a SonarQube server."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from sonarkit.core import ResourceData, SonarClient, SonarError, ValidationError

logger = logging.getLogger(__name__)

_VALUE_FIELDS = ("value", "values", "field_values")


@dataclass
class Setting:
    """A setting as returned by the settings API."""

    key: str = ""
    value: str = ""
    values: list[str] | None = None
    inherited: bool = False
    field_values: list[dict[str, str]] | None = None

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> Setting:
        values = payload.get("values")
        field_values = payload.get("fieldValues")
        return cls(
            key=payload.get("key", ""),
            value=payload.get("value", ""),
            values=None if values is None else list(values),
            inherited=bool(payload.get("inherited", False)),
            field_values=None if field_values is None else [dict(item) for item in field_values],
        )

    def to_map(self) -> dict[str, Any]:
        """Return the setting as a plain mapping, leaving out unset lists."""
        result: dict[str, Any] = {"key": self.key, "value": self.value}
        if self.values is not None:
            result["values"] = self.values
        if self.field_values is not None:
            result["field_values"] = self.field_values
        return result


def _marshal(value: Any) -> str:
    """Encode a value as compact JSON with sorted keys and escaped HTML characters."""
    text = json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def _decode(response: Any, context: str) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        raise SonarError(f"{context}: failed to decode json: {exc}") from exc


def validate(data: ResourceData) -> None:
    """Check that a key and exactly one kind of value are configured."""
    if data.values.get("key") is None:
        raise ValidationError("key: required field is not set")
    configured = [name for name in _VALUE_FIELDS if data.values.get(name) is not None]
    if len(configured) != 1:
        raise ValidationError(
            f"exactly one of {', '.join(_VALUE_FIELDS)} must be set, got: "
            f"{', '.join(configured) or 'none'}"
        )


def create_or_update_params(key: str, data: ResourceData) -> dict[str, list[str]]:
    """Build the query parameters that set a setting from the resource data."""
    params: dict[str, list[str]] = {"key": [key]}
    value, has_value = data.get_ok("value")
    if has_value:
        params["value"] = [value]
        return params
    values, has_values = data.get_ok("values")
    if has_values:
        params["values"] = [str(item) for item in values]
        return params
    field_values = data.get("field_values") or []
    if field_values:
        params["fieldValues"] = [_marshal(item) for item in field_values]
    return params


def create(data: ResourceData, client: SonarClient) -> None:
    """Set the setting on the server."""
    validate(data)
    key = data.get("key")
    client.request(
        "POST", "/api/settings/set", create_or_update_params(key, data), HTTPStatus.NO_CONTENT
    )
    data.id = key
    read(data, client)


def read(data: ResourceData, client: SonarClient) -> None:
    """Refresh the setting from the server; raise if it cannot be found."""
    response = client.request("GET", "/api/settings/values", {"keys": data.id}, HTTPStatus.OK)
    payload = _decode(response, "settings read")
    for setting in map(Setting.from_json, payload.get("settings") or []):
        if setting.key == data.id:
            data.set("key", setting.key)
            data.set("value", setting.value)
            data.set("values", list(setting.values or []))
            data.set("field_values", list(setting.field_values or []))
            return
    raise SonarError(f"settings read: failed to find setting: {data.id}")


def update(data: ResourceData, client: SonarClient) -> None:
    """Set the setting's new value on the server."""
    client.request(
        "POST",
        "/api/settings/set",
        create_or_update_params(data.id, data),
        HTTPStatus.NO_CONTENT,
    )
    read(data, client)


def delete(data: ResourceData, client: SonarClient) -> None:
    """Reset the setting to its default."""
    client.request("POST", "/api/settings/reset", {"keys": data.id}, HTTPStatus.NO_CONTENT)


def import_state(data: ResourceData, client: SonarClient) -> list[ResourceData]:
    """Load an existing setting by its key."""
    data.set("key", data.id)
    read(data, client)
    return [data]


def get_component_settings(component: str, client: SonarClient) -> list[Setting]:
    """Return the settings of a component, sorted by key."""
    if not component:
        return []
    response = client.request(
        "GET", "/api/settings/values", {"component": component}, HTTPStatus.OK
    )
    payload = _decode(response, "get component settings")
    settings = [Setting.from_json(item) for item in payload.get("settings") or []]
    return sorted(settings, key=lambda setting: setting.key)


def check_setting_diff(a: dict[str, Any], b: Setting) -> bool:
    """Compare a configured setting with the one on the server.

    Field values and multiple values report True when they match; a single
    value reports True when it differs.
    """
    field_values = a.get("field_values")
    if field_values is not None:
        server_values = b.field_values or []
        if len(field_values) != len(server_values):
            return False
        return all(
            _marshal(mine) == _marshal(theirs)
            for mine, theirs in zip(field_values, server_values)
        )
    values = a.get("values")
    if values is not None and len(values) > 0:
        server_values = b.values or []
        if len(values) != len(server_values):
            return False
        return all(str(mine) == str(theirs) for mine, theirs in zip(values, server_values))
    value = a.get("value")
    if value is not None and value != "":
        return value != b.value
    return False


def component_setting_params(setting: dict[str, Any]) -> dict[str, list[str]]:
    """Build the query parameters that set one component setting."""
    params: dict[str, list[str]] = {"key": [setting["key"]]}
    logger.debug("setting.value %r", setting.get("value"))
    logger.debug("setting.values %r", setting.get("values"))
    logger.debug("setting.field_values %r", setting.get("field_values"))

    value = setting.get("value")
    if value is not None and value != "":
        params["value"] = [value]
        return params

    values = setting.get("values")
    if values is not None and len(values) > 0:
        params["values"] = [str(item) for item in values]
        return params

    field_values = setting.get("field_values")
    if field_values is not None and len(field_values) > 0:
        params["fieldValues"] = [_marshal(item) for item in field_values]
    return params


def set_component_setting(component: str, setting: dict[str, Any], client: SonarClient) -> None:
    """Set one setting on a component."""
    params = component_setting_params(setting)
    params["component"] = [component]
    try:
        client.request("POST", "/api/settings/set", params, HTTPStatus.NO_CONTENT)
    except SonarError as exc:
        raise SonarError(
            f"set component settings: failed to set project setting key={setting['key']}: {exc}"
        ) from exc


def remove_component_settings(
    component: str,
    new_settings: list[dict[str, Any]],
    api_settings: list[Setting],
    client: SonarClient,
) -> bool:
    """Reset the component's own settings that are no longer configured.

    Return whether anything was reset.
    """
    if not component:
        return False
    wanted = {setting["key"] for setting in new_settings}
    to_delete = [
        setting.key
        for setting in api_settings
        if setting.key not in wanted and not setting.inherited
    ]
    if not to_delete:
        return False
    try:
        client.request(
            "POST",
            "/api/settings/reset",
            {"component": component, "keys": ",".join(to_delete)},
            HTTPStatus.NO_CONTENT,
        )
    except SonarError as exc:
        raise SonarError(
            f"remove component settings: failed to delete setting {component}: {exc}"
        ) from exc
    return True


def synchronize_settings(data: ResourceData, client: SonarClient) -> bool:
    """Bring the component's settings in line with the configured ones.

    Return whether anything was changed on the server.
    """
    changed = False
    component = data.id
    configured: list[dict[str, Any]] = data.get("setting") or []
    try:
        api_settings = get_component_settings(component, client)
    except SonarError:
        api_settings = []

    for setting in configured:
        key = setting["key"]
        exists = False
        for api_setting in api_settings:
            if api_setting.key != key:
                continue
            exists = True
            if check_setting_diff(setting, api_setting):
                try:
                    set_component_setting(component, setting, client)
                except SonarError as exc:
                    raise SonarError(
                        f"synchronize settings: failed to update setting '{key}': {exc}"
                    ) from exc
                changed = True
        if not exists:
            try:
                set_component_setting(component, setting, client)
            except SonarError as exc:
                raise SonarError(
                    f"synchronize settings: failed to create setting '{key}': {exc}"
                ) from exc
            changed = True

    if remove_component_settings(component, configured, api_settings, client):
        changed = True

    if changed:
        data.set("setting", configured)
    return changed