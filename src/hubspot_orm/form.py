"""
HubSpot marketing forms.

Forms live under the marketing API and are not shaped like CRM objects:
there is no ``properties`` envelope and ids are GUID strings.
"""

from typing import Any, Mapping

from hubspot_orm.resource import Resource


class Form(Resource):
    """A marketing form definition."""

    API_ROOT = "/marketing/v3"
    METADATA_FIELDS = frozenset({"createdAt", "updatedAt", "archived"})

    def __repr__(self) -> str:
        field_groups = self.get("fieldGroups")
        count = len(field_groups) if isinstance(field_groups, list) else "-"
        return f"<Form id={self.id!r} name={self.get('name')!r} fieldGroups={count}>"

    @staticmethod
    def _extract_id(value: Any) -> Any:
        return value

    def _is_api_response(self, data: Mapping[str, Any]) -> bool:
        return isinstance(data.get("fieldGroups"), list) or isinstance(
            data.get("configuration"), Mapping
        )

    def _initialize_from_api(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            if self._is_metadata_field(key):
                self.metadata[key] = value
            else:
                self.properties[key] = value
