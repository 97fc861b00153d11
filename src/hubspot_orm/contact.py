"""HubSpot contacts."""

from typing import Any, Iterable, Mapping

from hubspot_orm.resource import Resource


class Contact(Resource):
    """
    A CRM contact.

    Every ``hs_``-prefixed property is computed by HubSpot, so it is kept
    in ``metadata`` rather than ``properties``.
    """

    def _is_metadata_field(self, key: str) -> bool:
        return key in self.METADATA_FIELDS or key.startswith("hs_")

    @classmethod
    def find_by_token(cls, token: str, properties: Iterable[str] | None = None) -> "Contact":
        """
        Find a contact by its hubspotutk tracking cookie.

        Only the legacy v1 API supports this lookup; its response is
        converted to the v3 shape before the record is built.

        Example:
            contact = Contact.find_by_token(cookie, ["firstname", "email"])
        """
        property_list = cls._build_property_list(properties)
        params: dict[str, Any] = {
            "property": property_list,
            "propertyMode": "value_only",
        }
        response = cls._client().get(f"/contacts/v1/contact/utk/{token}/profile", params=params)
        return cls(cls._convert_v1_response(response.data, property_list))

    @staticmethod
    def _convert_v1_response(data: Mapping[str, Any], property_list: list[str]) -> dict[str, Any]:
        v1_properties = data.get("properties") or {}
        return {
            "id": data.get("vid"),
            "properties": {
                name: (v1_properties.get(name) or {}).get("value")
                for name in property_list
            },
        }
