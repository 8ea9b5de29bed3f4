# sonarkit

Declarative management of SonarQube objects through its web API: custom
rules, global and per-component settings, users, the external identity of
non-local users, webhooks and quality-profile-to-project associations.

Each kind of object has its own module. The modules expose lifecycle
functions such as `create`, `read`, `update`, `delete` and `import_state`,
where the object supports them. Each function takes a `ResourceData`, which
holds the desired state, and a `SonarClient`, which talks to the server.
After a call, the `ResourceData` holds the state the server reports. Failures
raise `SonarError`. Modules with a `validate` function raise
`ValidationError` (a subclass of `SonarError`) for configurations that break
a field's constraints; `create` in those modules validates first.

## Installation

```
pip install sonarkit
```

Install with the `test` extra to run the test suite:

```
pip install "sonarkit[test]"
pytest
```

## Usage

```python
from sonarkit.core import ResourceData, SonarClient
from sonarkit import settings, webhooks

token = "token"
client = SonarClient("http://localhost:9000", auth=(token, ""))

hook = ResourceData({"name": "ci", "url": "https://ci.example.com/hook"})
webhooks.create(hook, client)
print(hook.id)

setting = ResourceData({"key": "sonar.global.exclusions", "values": ["foo", "bar"]})
settings.create(setting, client)
print(setting.get("values"))
```

`SonarClient` accepts a ready `requests.Session` through `session=`, and
`anonymize_users=True` makes `users.delete` ask the server to anonymize the
deactivated user.

`ResourceData` keeps the configured values in `values`, the resource
identifier in `id`, and the last known values in `previous`;
`has_change(key)` compares the two, which `users.update` uses to decide
whether to push a new e-mail address or password.

## Modules

| Module | Manages |
| --- | --- |
| `sonarkit.core` | `SonarClient`, `ResourceData`, `SonarError`, `ValidationError`, `string_slices_equal` |
| `sonarkit.rules` | Custom rules built from templates |
| `sonarkit.settings` | Global settings, plus synchronising a component's settings (`synchronize_settings`) |
| `sonarkit.users` | Local and external users |
| `sonarkit.external_identity` | The identity provider of non-local users |
| `sonarkit.webhooks` | Global and project webhooks |
| `sonarkit.qualityprofile_association` | Linking quality profiles to projects |

## Import identifiers

- Quality profile association: `profile/project/language`
- Rule: the rule key
- Setting: the setting key
- User: the login
- Webhook: `key`, or `key/project` for a project webhook

## What it does not do

- It has no command-line tool; it is used as a library.
- It does not manage user tokens, projects or quality profiles themselves;
  an association only links an existing profile to an existing project.
- The external identity of a user cannot be read back from the server, so
  `external_identity.read` and `external_identity.delete` do not contact it.