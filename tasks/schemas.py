"""
Request body schemas for the task endpoints.

Bodies are checked here, before any database access, so the views only ever
see well-typed values. Update bodies keep the difference between a field
that was left out and a field explicitly set to null.
"""

import json
from dataclasses import dataclass


class SchemaError(ValueError):
    """The request body does not match what the endpoint expects."""


class _Missing:
    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"


MISSING = _Missing()

TITLE_MAX_LENGTH = 255


def parse_json(body):
    """Decode a request body into a dict. An empty body counts as ``{}``."""
    if not body:
        return {}
    try:
        payload = json.loads(body.decode("utf-8") if isinstance(body, bytes) else body)
    except (UnicodeDecodeError, ValueError):
        raise SchemaError("Invalid JSON body.")
    if not isinstance(payload, dict):
        raise SchemaError("Request body must be a JSON object.")
    return payload


def _check_title_length(title):
    if len(title) > TITLE_MAX_LENGTH:
        raise SchemaError(f"Field 'title' must be at most {TITLE_MAX_LENGTH} characters.")


def _optional_text(payload, key):
    value = payload.get(key, MISSING)
    if value is MISSING or value is None or isinstance(value, str):
        return value
    raise SchemaError(f"Field '{key}' must be a string or null.")


@dataclass(frozen=True)
class TaskCreate:
    title: str
    description: str | None = None

    @classmethod
    def from_payload(cls, payload):
        title = payload.get("title")
        if not title:
            raise SchemaError("Task title is required.")
        if not isinstance(title, str):
            raise SchemaError("Field 'title' must be a string.")
        _check_title_length(title)

        description = _optional_text(payload, "description")
        # an empty description is stored as null
        return cls(title=title, description=description or None)


@dataclass(frozen=True)
class TaskPatch:
    title: object = MISSING
    description: object = MISSING
    completed: object = MISSING

    FIELDS = ("title", "description", "completed")

    @classmethod
    def from_payload(cls, payload):
        title = payload.get("title", MISSING)
        if title is not MISSING:
            if not isinstance(title, str):
                raise SchemaError("Field 'title' must be a string.")
            _check_title_length(title)

        completed = payload.get("completed", MISSING)
        if completed is not MISSING and not isinstance(completed, bool):
            raise SchemaError("Field 'completed' must be a boolean.")

        patch = cls(
            title=title,
            description=_optional_text(payload, "description"),
            completed=completed,
        )
        if not patch.changes():
            raise SchemaError("No fields provided to update.")
        return patch

    def changes(self):
        """(field, value) pairs for every field present in the body, null included."""
        return [
            (name, getattr(self, name))
            for name in self.FIELDS
            if getattr(self, name) is not MISSING
        ]
