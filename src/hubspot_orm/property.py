"""
Pydantic model for property definitions from the properties endpoint.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Property(BaseModel):
    """One field of a resource type's schema."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str
    label: str | None = None
    type: str | None = None
    field_type: str | None = Field(None, alias="fieldType")
    description: str | None = None
    group_name: str | None = Field(None, alias="groupName")
    hubspot_defined: bool = Field(False, alias="hubspotDefined")
    modification_metadata: dict[str, Any] = Field(
        default_factory=dict, alias="modificationMetadata"
    )

    @property
    def is_custom(self) -> bool:
        return not self.hubspot_defined

    @property
    def is_read_only(self) -> bool:
        """True when HubSpot refuses writes to this property's value."""
        return bool(self.modification_metadata.get("readOnlyValue"))

    @property
    def summary(self) -> str:
        """Description, falling back to the label."""
        return self.description or self.label or ""

    def __repr__(self) -> str:
        return (
            f"<Property name={self.name!r} type={self.type!r} "
            f"fieldType={self.field_type!r} hubspotDefined={self.hubspot_defined}>"
        )
