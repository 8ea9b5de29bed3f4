from urllib.parse import parse_qsl, urlsplit

import pytest
import responses

from sonarkit import rules
from sonarkit.core import ResourceData, SonarClient, SonarError, ValidationError

BASE = "http://sonar.example.com"
RULE_KEY = "xml:basicRule"


def _query(call):
    return dict(parse_qsl(urlsplit(call.request.url).query, keep_blank_values=True))


def _rule_json(**overrides):
    payload = {
        "key": RULE_KEY,
        "repo": "xml",
        "name": "name",
        "mdDesc": "markdown_description",
        "severity": "INFO",
        "status": "READY",
        "templateKey": "xml:XPathCheck",
        "type": "VULNERABILITY",
        "isTemplate": False,
        "tags": [],
        "sysTags": [],
        "params": [
            {"key": "expression", "htmlDesc": "XPath", "defaultValue": "", "type": "TEXT"}
        ],
    }
    payload.update(overrides)
    return payload


def _config():
    return ResourceData(
        values={
            "custom_key": "basicRule",
            "markdown_description": "markdown_description",
            "name": "name",
            "template_key": "xml:XPathCheck",
            "severity": "INFO",
            "status": "READY",
            "type": "VULNERABILITY",
        }
    )


@pytest.fixture
def mock():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def client():
    return SonarClient(BASE)


def test_create_basic(mock, client):
    mock.add(responses.POST, BASE + "/api/rules/create", json={"rule": _rule_json()})
    mock.add(
        responses.GET,
        BASE + "/api/rules/search",
        json={"rules": [_rule_json()], "total": 1, "p": 1, "ps": 100},
    )
    data = _config()
    rules.create(data, client)
    assert data.id == RULE_KEY
    assert data.get("custom_key") == "basicRule"
    assert data.get("markdown_description") == "markdown_description"
    assert data.get("name") == "name"
    assert data.get("template_key") == "xml:XPathCheck"
    assert data.get("severity") == "INFO"
    assert data.get("status") == "READY"
    assert data.get("type") == "VULNERABILITY"
    sent = _query(mock.calls[0])
    assert sent["customKey"] == "basicRule"
    assert sent["templateKey"] == "xml:XPathCheck"
    assert sent["preventReactivation"] == "false"
    assert sent["params"] == ""
    assert _query(mock.calls[1]) == {"rule_key": RULE_KEY}


def test_import_reads_rule(mock, client):
    mock.add(
        responses.GET, BASE + "/api/rules/search", json={"rules": [_rule_json()], "total": 1}
    )
    data = ResourceData(id=RULE_KEY)
    assert rules.import_state(data, client) == [data]
    assert data.get("template_key") == "xml:XPathCheck"
    assert data.get("type") == "VULNERABILITY"


def test_read_missing_rule_raises(mock, client):
    mock.add(responses.GET, BASE + "/api/rules/search", json={"rules": [], "total": 0})
    with pytest.raises(SonarError, match="failed to find rule"):
        rules.read(ResourceData(id=RULE_KEY), client)


def test_update_sends_fields_then_reads(mock, client):
    mock.add(responses.POST, BASE + "/api/rules/update", json={"rule": _rule_json()})
    mock.add(
        responses.GET,
        BASE + "/api/rules/search",
        json={"rules": [_rule_json(severity="MAJOR")], "total": 1},
    )
    data = _config()
    data.id = RULE_KEY
    data.set("severity", "MAJOR")
    rules.update(data, client)
    sent = _query(mock.calls[0])
    assert sent["key"] == RULE_KEY
    assert sent["severity"] == "MAJOR"
    assert sent["markdown_description"] == "markdown_description"
    assert data.get("severity") == "MAJOR"


def test_delete_sends_key(mock, client):
    mock.add(responses.POST, BASE + "/api/rules/delete", status=200)
    assert rules.delete(ResourceData(id=RULE_KEY), client) is None
    assert _query(mock.calls[0]) == {"key": RULE_KEY}


def test_delete_failure_raises(mock, client):
    mock.add(responses.POST, BASE + "/api/rules/delete", status=404)
    with pytest.raises(SonarError):
        rules.delete(ResourceData(id=RULE_KEY), client)


def test_rule_from_json_maps_fields():
    rule = rules.Rule.from_json(_rule_json())
    assert rule.key == RULE_KEY
    assert rule.md_desc == "markdown_description"
    assert rule.template_key == "xml:XPathCheck"
    assert rule.params == [rules.RuleParam(key="expression", html_desc="XPath", type="TEXT")]


def test_validate_fills_defaults():
    data = _config()
    del data.values["status"]
    rules.validate(data)
    assert data.get("status") == "READY"
    assert data.get("prevent_reactivation") == "false"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("severity", "SEVERE"),
        ("status", "DONE"),
        ("type", "FEATURE"),
        ("prevent_reactivation", "maybe"),
        ("name", "n" * 201),
        ("custom_key", "k" * 201),
    ],
)
def test_validate_rejects_bad_values(key, value):
    data = _config()
    data.set(key, value)
    with pytest.raises(ValidationError, match=key):
        rules.validate(data)


def test_validate_requires_template_key():
    data = _config()
    del data.values["template_key"]
    with pytest.raises(ValidationError, match="template_key"):
        rules.validate(data)