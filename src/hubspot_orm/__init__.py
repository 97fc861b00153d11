"""
hubspot_orm - object-style access to HubSpot CRM resources.

Features:
- Open-schema records with change tracking (only edited fields are sent)
- Lazy cursor pagination over list and search endpoints
- Batch create/update/upsert/archive with results written back locally
- Transparent retry on 429 using the Retry-After header

Quick Start:
    import hubspot_orm
    from hubspot_orm import Contact

    hubspot_orm.configure(access_token="pat-na1-...")

    contact = Contact.find(123)
    contact.lastname = "Smith"
    contact.save()
"""

from hubspot_orm.config import (
    HubspotConfig,
    configure,
    get_config,
    is_configured,
    reset_config,
)
from hubspot_orm.client import ApiClient, ApiResponse, get_client, reset_client, set_client
from hubspot_orm.exceptions import (
    ArgumentError,
    HubspotError,
    NotConfiguredError,
    NotFoundError,
    NothingToDoError,
    OauthScopeError,
    RateLimitExceededError,
    RequestError,
)
from hubspot_orm.property import Property
from hubspot_orm.resource import Resource
from hubspot_orm.paged_collection import PagedCollection
from hubspot_orm.paged_batch import PagedBatch
from hubspot_orm.batch import Batch, BatchResponse
from hubspot_orm.contact import Contact
from hubspot_orm.company import Company
from hubspot_orm.form import Form
from hubspot_orm.user import Owner, User

__version__ = "1.0.0"
__all__ = [
    # Configuration
    "HubspotConfig",
    "configure",
    "get_config",
    "is_configured",
    "reset_config",

    # HTTP
    "ApiClient",
    "ApiResponse",
    "get_client",
    "set_client",
    "reset_client",

    # Errors
    "HubspotError",
    "RequestError",
    "NotFoundError",
    "OauthScopeError",
    "RateLimitExceededError",
    "NotConfiguredError",
    "ArgumentError",
    "NothingToDoError",

    # Core
    "Resource",
    "Property",
    "PagedCollection",
    "PagedBatch",
    "Batch",
    "BatchResponse",

    # Resource types
    "Contact",
    "Company",
    "Form",
    "User",
    "Owner",
]
