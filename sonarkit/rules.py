"""Custom SonarQube rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from sonarkit.core import ResourceData, SonarClient, SonarError, ValidationError

_REQUIRED = ("custom_key", "markdown_description", "name", "template_key")
_DEFAULTS = {"prevent_reactivation": "false", "status": "READY"}
_MAX_LENGTH = {"custom_key": 200, "name": 200}
_CHOICES = {
    "prevent_reactivation": ("true", "false", "yes", "no"),
    "severity": ("INFO", "MINOR", "MAJOR", "CRITICAL", "BLOCKER"),
    "status": ("BETA", "DEPRECATED", "READY", "REMOVED"),
    "type": ("CODE_SMELL", "BUG", "VULNERABILITY", "SECURITY_HOTSPOT"),
}


@dataclass
class RuleParam:
    """A parameter of a rule."""

    key: str = ""
    html_desc: str = ""
    default_value: str = ""
    type: str = ""


@dataclass
class Rule:
    """A rule as returned by the rules API."""

    key: str = ""
    repo: str = ""
    name: str = ""
    created_at: str = ""
    updated_at: str = ""
    html_desc: str = ""
    md_desc: str = ""
    severity: str = ""
    status: str = ""
    internal_key: str = ""
    is_template: bool = False
    tags: list[str] = field(default_factory=list)
    template_key: str = ""
    sys_tags: list[str] = field(default_factory=list)
    lang: str = ""
    lang_name: str = ""
    scope: str = ""
    is_external: bool = False
    type: str = ""
    params: list[RuleParam] = field(default_factory=list)

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> Rule:
        return cls(
            key=payload.get("key", ""),
            repo=payload.get("repo", ""),
            name=payload.get("name", ""),
            created_at=payload.get("createdAt", ""),
            updated_at=payload.get("updatedAt", ""),
            html_desc=payload.get("htmlDesc", ""),
            md_desc=payload.get("mdDesc", ""),
            severity=payload.get("severity", ""),
            status=payload.get("status", ""),
            internal_key=payload.get("internalKey", ""),
            is_template=bool(payload.get("isTemplate", False)),
            tags=list(payload.get("tags") or []),
            template_key=payload.get("templateKey", ""),
            sys_tags=list(payload.get("sysTags") or []),
            lang=payload.get("lang", ""),
            lang_name=payload.get("langName", ""),
            scope=payload.get("scope", ""),
            is_external=bool(payload.get("isExternal", False)),
            type=payload.get("type", ""),
            params=[
                RuleParam(
                    key=param.get("key", ""),
                    html_desc=param.get("htmlDesc", ""),
                    default_value=param.get("defaultValue", ""),
                    type=param.get("type", ""),
                )
                for param in payload.get("params") or []
            ],
        )


def _decode(response: Any, context: str) -> dict[str, Any]:
    try:
        return response.json()
    except ValueError as exc:
        raise SonarError(f"{context}: failed to decode json: {exc}") from exc


def validate(data: ResourceData) -> None:
    """Check the configuration against the schema and fill in defaults."""
    for key in _REQUIRED:
        if data.values.get(key) is None:
            raise ValidationError(f"{key}: required field is not set")
    for key, default in _DEFAULTS.items():
        if data.values.get(key) is None:
            data.set(key, default)
    for key, limit in _MAX_LENGTH.items():
        if len(data.get(key)) > limit:
            raise ValidationError(f"{key}: expected length between 0 and {limit}")
    for key, allowed in _CHOICES.items():
        value = data.get(key)
        if value and value not in allowed:
            raise ValidationError(f"{key}: expected one of {', '.join(allowed)}, got {value}")


def create(data: ResourceData, client: SonarClient) -> None:
    """Create a custom rule from a template."""
    validate(data)
    params = {
        "customKey": data.get("custom_key"),
        "markdownDescription": data.get("markdown_description"),
        "name": data.get("name"),
        "params": data.get("params"),
        "preventReactivation": data.get("prevent_reactivation"),
        "severity": data.get("severity"),
        "status": data.get("status"),
        "templateKey": data.get("template_key"),
        "type": data.get("type"),
    }
    response = client.request("POST", "/api/rules/create", params, HTTPStatus.OK)
    payload = _decode(response, "rule create")
    data.id = Rule.from_json(payload.get("rule") or {}).key
    read(data, client)


def read(data: ResourceData, client: SonarClient) -> None:
    """Refresh the rule from the server; raise if it cannot be found."""
    response = client.request("GET", "/api/rules/search", {"rule_key": data.id}, HTTPStatus.OK)
    payload = _decode(response, "rule read")
    for rule in map(Rule.from_json, payload.get("rules") or []):
        if rule.key == data.id:
            data.set("markdown_description", rule.md_desc)
            data.set("name", rule.name)
            data.set("severity", rule.severity)
            data.set("template_key", rule.template_key)
            data.set("status", rule.status)
            data.set("type", rule.type)
            return
    raise SonarError(f"rule read: failed to find rule: {data.id}")


def update(data: ResourceData, client: SonarClient) -> None:
    """Update the rule's description, name, parameters, severity and status."""
    params = {
        "key": data.id,
        "markdown_description": data.get("markdown_description"),
        "name": data.get("name"),
        "params": data.get("params"),
        "severity": data.get("severity"),
        "status": data.get("status"),
    }
    client.request("POST", "/api/rules/update", params, HTTPStatus.OK)
    read(data, client)


def delete(data: ResourceData, client: SonarClient) -> None:
    """Delete the rule."""
    client.request("POST", "/api/rules/delete", {"key": data.id}, HTTPStatus.OK)


def import_state(data: ResourceData, client: SonarClient) -> list[ResourceData]:
    """Load an existing rule by its key."""
    read(data, client)
    return [data]