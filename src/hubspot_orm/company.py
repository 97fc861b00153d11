"""HubSpot companies."""

from hubspot_orm.resource import Resource


class Company(Resource):
    """A CRM company; all behaviour comes from Resource."""
    pass
