"""
HubSpot users.

User records are mostly read-only ``hs_`` fields, so the useful ones are
always fetched and exposed under friendlier names.
"""

from hubspot_orm.resource import Resource


class User(Resource):
    """A HubSpot user (also used as an owner)."""

    REQUIRED_PROPERTIES = ("hs_email", "hs_given_name", "hs_family_name")

    @property
    def first_name(self) -> str | None:
        return self.get("hs_given_name")

    firstname = first_name

    @property
    def last_name(self) -> str | None:
        return self.get("hs_family_name")

    lastname = last_name

    @property
    def email(self) -> str | None:
        return self.get("hs_email")


Owner = User
