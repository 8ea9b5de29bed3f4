"""Manage SonarQube rules, settings, users, webhooks and profile associations."""

__version__ = "0.1.0"

__all__ = [
    "core",
    "external_identity",
    "qualityprofile_association",
    "rules",
    "settings",
    "users",
    "webhooks",
]