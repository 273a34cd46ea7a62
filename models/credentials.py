"""
Connection parameters for the upstream CRM.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ApiCredentials(BaseModel):
    """Base URL, tenant schema and Basic-Auth login for the CRM API."""

    model_config = ConfigDict(populate_by_name=True)

    api_url: str = Field(alias="apiUrl")
    username: str
    password: str
    # "schema" would shadow BaseModel.schema(), so keep the alias on the wire only
    schema_id: str = Field(alias="schema")

    @property
    def is_complete(self) -> bool:
        """True when all four fields are non-empty."""
        return all(
            value.strip()
            for value in (self.api_url, self.username, self.password, self.schema_id)
        )

    @property
    def base_url(self) -> str:
        return self.api_url.strip().rstrip("/")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def masked(self) -> dict[str, Any]:
        """Dictionary safe to return to clients or write to logs."""
        data = self.to_dict()
        data["password"] = "********" if self.password else ""
        return data


class ConnectionTestResult(BaseModel):
    """Outcome of a connectivity probe. Never represents an exception."""

    success: bool
    message: str
    details: Any = None
