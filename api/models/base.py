# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity models with common fields and validation.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


SYSTEM_USER = "SISTEMA"


def generate_id() -> str:
    """Generate a new UUID4 identifier as string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current timestamp in UTC."""
    return datetime.now(timezone.utc)


class BaseEntity(BaseModel):
    """Base entity with common fields for all domain objects."""

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        # Validate assignment
        validate_assignment=True
    )

    id: str = Field(default_factory=generate_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last update timestamp")
    created_by: Optional[str] = Field(None, description="User ID who created this entity")
    updated_by: Optional[str] = Field(None, description="User ID who last updated this entity")
    schema_version: int = Field(default=1, description="Schema version for migrations")

    def update_timestamp(self, updated_by: Optional[str]) -> None:
        """Update the timestamp and updated_by fields."""
        self.updated_at = utcnow()
        self.updated_by = updated_by or SYSTEM_USER

    def to_document(self) -> dict:
        """Serialize to a MongoDB document keyed by ``_id``."""
        document = self.model_dump()
        document["_id"] = document.pop("id")
        return document


class BaseRequest(BaseModel):
    """Base model for operation requests."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True
    )
