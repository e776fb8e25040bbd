"""Current-user (subject) model.

The backend issues one user object per login/refresh; :class:`Subject`
keeps the parts the authorization engine reads. The permissions
structure is stored as given apart from its scope keys, which are
normalized so ``12``, ``12.0`` and ``"12"`` address the same building.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .permissions.constants import Role, normalize_scope


class Subject(BaseModel):
    """The signed-in user as seen by the authorization engine."""

    model_config = {"frozen": True, "extra": "ignore"}

    id: str | None = None
    role: str = ""
    permissions: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> str | None:
        """Accept numeric ids from the backend."""
        if v is None:
            return None
        return str(v)

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, Role):
            return v.value
        return str(v)

    @field_validator("permissions", mode="before")
    @classmethod
    def validate_permissions(cls, v: Any) -> dict[str, Any]:
        """Normalize scope keys; anything that is not a mapping becomes empty.

        Blank or None keys address no building and are dropped.
        """
        if not isinstance(v, Mapping):
            return {}
        result: dict[str, Any] = {}
        for key, entry in v.items():
            scope = normalize_scope(key)
            if scope is not None:
                result[scope] = entry
        return result

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Subject:
        """Build a Subject from the backend's ``/users/me/`` payload."""
        return cls.model_validate(dict(payload))

    def has_role(self, role: Role | str) -> bool:
        value = role.value if isinstance(role, Role) else role
        return bool(value) and self.role == value


__all__ = ["Subject"]
