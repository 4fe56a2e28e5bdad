"""Request bodies accepted by the JSON API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class InsertRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class UpdateRequest(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)
    where: dict[str, Any] = Field(default_factory=dict)


class DeleteRequest(BaseModel):
    where: dict[str, Any] = Field(default_factory=dict)


class BulkUpdateRequest(BaseModel):
    changes: list[UpdateRequest] = Field(default_factory=list)


class BulkDeleteRequest(BaseModel):
    where: list[dict[str, Any]] = Field(default_factory=list)


class ExecuteSQLRequest(BaseModel):
    sql: str = ""
