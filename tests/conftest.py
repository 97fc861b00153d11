"""
Pytest configuration and fixtures for hubspot_orm tests.

The network is replaced by httpx.MockTransport routed through StubAPI,
which also records every request for assertions.
"""

import json

import httpx
import pytest
import structlog

import hubspot_orm
from hubspot_orm.cache import property_cache
from hubspot_orm.client import ApiClient, reset_client, set_client
from hubspot_orm.config import reset_config
from hubspot_orm.paged_collection import PagedCollection

HUBSPOT_ENV_VARS = (
    "HUBSPOT_ACCESS_TOKEN",
    "HUBSPOT_PORTAL_ID",
    "HUBSPOT_CLIENT_SECRET",
    "HUBSPOT_TIMEOUT",
    "HUBSPOT_LOG_LEVEL",
)


class StubAPI:
    """
    Minimal route table for httpx.MockTransport.

    Routes are checked newest first, so a specific route registered after
    a general one for the same path takes precedence.
    """

    def __init__(self):
        self.routes = []
        self.requests: list[httpx.Request] = []

    def add(self, method, path, json=None, status=200, headers=None, match=None, text=None):
        self.routes.append(
            {
                "method": method.upper(),
                "path": path,
                "json": json,
                "status": status,
                "headers": headers or {},
                "match": match,
                "text": text,
            }
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for route in reversed(self.routes):
            if request.method != route["method"] or request.url.path != route["path"]:
                continue
            if route["match"] is not None and not route["match"](request):
                continue
            if route["text"] is not None:
                return httpx.Response(route["status"], text=route["text"], headers=route["headers"])
            if route["json"] is None:
                return httpx.Response(route["status"], headers=route["headers"])
            return httpx.Response(route["status"], json=route["json"], headers=route["headers"])

        return httpx.Response(404, json={"message": f"No stub for {request.method} {request.url.path}"})

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def request_json(request: httpx.Request):
    """Decode a recorded request's JSON body."""
    return json.loads(request.content)


def make_client(stub: StubAPI, **kwargs) -> ApiClient:
    """ApiClient wired to ``stub`` and installed as the default client."""
    client = ApiClient(access_token="test-token", transport=stub.transport(), **kwargs)
    set_client(client)
    return client


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Isolate each test from environment, config, client and schema cache."""
    for var in HUBSPOT_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(PagedCollection, "SEARCH_DELAY", 0)

    reset_config()
    reset_client()
    property_cache.clear()
    yield
    reset_client()
    reset_config()
    property_cache.clear()
    structlog.reset_defaults()


@pytest.fixture
def api():
    """A configured library whose HTTP traffic goes to a StubAPI."""
    stub = StubAPI()
    hubspot_orm.configure(access_token="test-token")
    make_client(stub)
    return stub


@pytest.fixture
def sample_contact_data():
    """Sample contact as returned by GET /crm/v3/objects/contacts/{id}."""
    return {
        "id": "101",
        "properties": {
            "email": "mace.windu@jedi.org",
            "firstname": "Mace",
            "lastname": "Windu",
            "createdate": "2024-01-15T10:30:00.000Z",
            "lastmodifieddate": "2024-01-16T14:20:00.000Z",
            "hs_object_id": "101",
            "hs_email_domain": "jedi.org",
        },
        "createdAt": "2024-01-15T10:30:00.000Z",
        "updatedAt": "2024-01-16T14:20:00.000Z",
        "archived": False,
    }


@pytest.fixture
def sample_company_data():
    """Sample company as returned by GET /crm/v3/objects/companies/{id}."""
    return {
        "id": "5001",
        "properties": {
            "name": "Acme Corporation",
            "domain": "acme.com",
            "createdate": "2023-06-01T09:00:00.000Z",
            "hs_object_id": "5001",
        },
        "createdAt": "2023-06-01T09:00:00.000Z",
        "updatedAt": "2024-01-10T11:30:00.000Z",
        "archived": False,
    }


@pytest.fixture
def sample_properties_response():
    """Sample response from GET /crm/v3/properties/{type}."""
    return {
        "results": [
            {
                "name": "email",
                "label": "Email",
                "type": "string",
                "fieldType": "text",
                "description": "A contact's email address",
                "groupName": "contactinformation",
                "hubspotDefined": True,
                "modificationMetadata": {"readOnlyValue": False, "archivable": True},
            },
            {
                "name": "hs_object_id",
                "label": "Record ID",
                "type": "number",
                "fieldType": "number",
                "description": "",
                "groupName": "contactinformation",
                "hubspotDefined": True,
                "modificationMetadata": {"readOnlyValue": True, "archivable": True},
            },
            {
                "name": "favourite_droid",
                "label": "Favourite droid",
                "type": "enumeration",
                "fieldType": "select",
                "groupName": "contactinformation",
                "modificationMetadata": {"readOnlyValue": False, "archivable": True},
            },
        ]
    }
