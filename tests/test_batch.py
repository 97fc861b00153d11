"""
Tests for bulk create/update/upsert/archive and result reconciliation.
"""

import pytest

from conftest import request_json
from hubspot_orm.batch import Batch, BatchResponse, match_by_id, match_created, property_matcher
from hubspot_orm.company import Company
from hubspot_orm.contact import Contact
from hubspot_orm.exceptions import ArgumentError, RequestError
from hubspot_orm.resource import Resource


def existing_contact(i, **changes):
    contact = Contact({"id": i, "properties": {"email": f"contact_{i}@example.com", "firstname": "Old"}})
    contact.update_attributes(changes)
    return contact


def existing_company(i, **changes):
    company = Company({"id": i, "properties": {"domain": f"company{i}.com", "name": "Old"}})
    company.update_attributes(changes)
    return company


class TestComposition:
    """Tests for building a batch."""

    def test_mixed_types_rejected(self):
        """Test that a batch refuses records of different types."""
        with pytest.raises(ArgumentError, match="same type"):
            Batch([Contact(email="a@b.c"), Company(name="Acme")])

    def test_add_resource_checks_type(self):
        """Test add_resource type check."""
        batch = Batch([Contact(email="a@b.c")])

        with pytest.raises(ArgumentError):
            batch.add_resource(Company(name="Acme"))

        batch.add_resource(Contact(email="d@e.f"))
        assert len(batch) == 2

    def test_alias_by_resource_name(self):
        """Test records are reachable under the resource name."""
        contacts = [Contact(email="a@b.c")]
        batch = Batch(contacts)

        assert batch.contacts == contacts
        assert list(batch) == contacts
        assert batch.resource_type == "contacts"
        with pytest.raises(AttributeError):
            batch.companies

    def test_any_changes(self):
        """Test any_changes across records."""
        assert Batch([existing_contact(1, firstname="New")]).any_changes()
        assert not Batch([existing_contact(1)]).any_changes()

    def test_batch_size_limit(self):
        """Test chunk size per resource type."""
        assert Batch.batch_size_limit("contacts") == 10
        assert Batch.batch_size_limit("companies") == 100


class TestCreate:
    def test_create_reconciles_ids(self, api):
        """Test that created ids are written back onto the new records."""
        api.add(
            "POST",
            "/crm/v3/objects/contacts/batch/create",
            json={
                "status": "COMPLETE",
                "results": [
                    {
                        "id": "2",
                        "properties": {"email": "b@example.com", "hs_object_id": "2"},
                        "updatedAt": "2024-03-01T00:00:00.000Z",
                    },
                    {"id": "1", "properties": {"email": "a@example.com", "hs_object_id": "1"}},
                ],
            },
        )
        first = Contact(email="a@example.com")
        second = Contact(email="b@example.com")
        batch = Batch([first, second])

        assert batch.create() is True

        assert first.id == 1
        assert second.id == 2
        assert first.changes == {} and second.changes == {}
        assert first.properties == {"email": "a@example.com"}
        assert second.metadata["updatedAt"] == "2024-03-01T00:00:00.000Z"
        assert batch.all_successful()
        assert request_json(api.requests[0]) == {
            "inputs": [
                {"properties": {"email": "a@example.com"}},
                {"properties": {"email": "b@example.com"}},
            ]
        }


    def test_failed_chunk_keeps_earlier_results(self, api):
        """Test that records from accepted chunks are reconciled when a later chunk fails."""
        path = "/crm/v3/objects/contacts/batch/create"
        contacts = [Contact(email=f"contact_{i}@example.com") for i in range(1, 16)]
        api.add(
            "POST",
            path,
            json={
                "results": [
                    {"id": str(i), "properties": {"email": f"contact_{i}@example.com"}}
                    for i in range(1, 11)
                ]
            },
        )
        api.add(
            "POST",
            path,
            json={"message": "Internal error"},
            status=500,
            match=lambda r: len(request_json(r)["inputs"]) == 5,
        )
        batch = Batch(contacts)

        with pytest.raises(RequestError):
            batch.create()

        assert len(batch.responses) == 1
        assert [c.id for c in contacts[:10]] == list(range(1, 11))
        assert all(c.changes == {} for c in contacts[:10])
        assert not any(c.is_persisted() for c in contacts[10:])
        assert all(c.has_changes() for c in contacts[10:])


class TestUpdate:
    def test_update_by_id(self, api):
        """Test batch update matched by id."""
        api.add(
            "POST",
            "/crm/v3/objects/contacts/batch/update",
            json={"results": [{"id": "1", "properties": {"firstname": "New", "lastname": "Server"}}]},
        )
        contact = existing_contact(1, firstname="New")

        assert Batch([contact]).update() is True

        assert contact.changes == {}
        assert contact.properties["firstname"] == "New"
        # Fields not changed locally are not adopted from the result
        assert "lastname" not in contact.properties
        assert request_json(api.requests[0]) == {"inputs": [{"id": 1, "properties": {"firstname": "New"}}]}

    def test_unchanged_records_are_skipped(self, api):
        """Test that records without changes are left out of the request."""
        api.add("POST", "/crm/v3/objects/contacts/batch/update", json={"results": []})

        Batch([existing_contact(1, firstname="New"), existing_contact(2), existing_contact(3, firstname="X")]).update()

        assert [i["id"] for i in request_json(api.requests[0])["inputs"]] == [1, 3]

    def test_nothing_to_send(self, api):
        """Test update with no pending changes."""
        assert Batch([existing_contact(1)]).update() is False
        assert api.requests == []

    def test_empty_batch(self, api):
        """Test saving an empty batch."""
        with pytest.raises(ArgumentError, match="empty"):
            Batch().update()

    def test_id_property_inputs(self, api):
        """Test inputs keyed by a custom id property."""
        api.add("POST", "/crm/v3/objects/contacts/batch/update", json={"results": []})

        Batch([existing_contact(1, firstname="New")], id_property="email").update()

        assert request_json(api.requests[0])["inputs"] == [
            {"id": "contact_1@example.com", "idProperty": "email", "properties": {"firstname": "New"}}
        ]

    def test_update_by_property_reconciles(self, api):
        """Test update results matched by id property."""
        api.add(
            "POST",
            "/crm/v3/objects/contacts/batch/update",
            json={"results": [{"id": "1", "properties": {"email": "contact_1@example.com", "firstname": "New"}}]},
        )
        contact = existing_contact(1, firstname="New")

        Batch([contact], id_property="email").update()

        assert contact.changes == {}

    def test_contacts_chunked_by_ten(self, api):
        """Test contacts are sent in chunks of ten."""
        api.add("POST", "/crm/v3/objects/contacts/batch/update", json={"results": []})
        contacts = [existing_contact(i, firstname="New") for i in range(1, 16)]

        assert Batch(contacts, id_property="email").update() is True

        calls = api.calls("POST", "/crm/v3/objects/contacts/batch/update")
        assert [len(request_json(c)["inputs"]) for c in calls] == [10, 5]

    def test_other_types_chunked_by_hundred(self, api):
        """Test other types are sent in chunks of a hundred."""
        api.add("POST", "/crm/v3/objects/companies/batch/update", json={"results": []})
        companies = [existing_company(i, name="New") for i in range(1, 151)]

        assert Batch(companies).update() is True

        calls = api.calls("POST", "/crm/v3/objects/companies/batch/update")
        assert [len(request_json(c)["inputs"]) for c in calls] == [100, 50]


class TestOutcome:
    """Tests for all_successful, partial_success and any_failed."""

    def test_partial_success(self, api):
        """Test a 207 response."""
        api.add(
            "POST",
            "/crm/v3/objects/contacts/batch/update",
            json={"results": [], "errors": [{"message": "Property values were not valid"}]},
            status=207,
        )
        batch = Batch([existing_contact(1, firstname="New")])

        assert batch.update() is True
        assert batch.partial_success()
        assert not batch.all_successful()
        assert not batch.any_failed()
        assert batch.responses[0].errors == [{"message": "Property values were not valid"}]

    def test_mixed_full_and_partial_chunks(self, api):
        """Test that a 200 chunk plus a 207 chunk is neither all nor partial success."""
        path = "/crm/v3/objects/contacts/batch/update"
        api.add("POST", path, json={"results": []})
        api.add(
            "POST",
            path,
            json={"results": []},
            status=207,
            match=lambda r: len(request_json(r)["inputs"]) == 5,
        )
        batch = Batch([existing_contact(i, firstname="New") for i in range(1, 16)])

        batch.update()

        assert [r.status_code for r in batch.responses] == [200, 207]
        assert not batch.all_successful()
        assert not batch.partial_success()
        assert not batch.any_failed()

    def test_other_2xx_counts_as_failure(self, api):
        """Test that a 202 chunk counts as failed."""
        api.add("POST", "/crm/v3/objects/contacts/batch/update", json={"results": []}, status=202)
        batch = Batch([existing_contact(1, firstname="New")])

        assert batch.update() is False
        assert batch.any_failed()


class TestUpsert:
    def test_requires_id_property(self, api):
        """Test upsert refuses the default id property."""
        batch = Batch([existing_company(1, name="New")])

        with pytest.raises(ArgumentError):
            batch.upsert()
        assert api.requests == []

    def test_requires_id_values(self, api):
        """Test upsert refuses blank id values."""
        batch = Batch([Company(name="No domain"), Company(domain="acme.com")], id_property="domain")

        with pytest.raises(ArgumentError, match="non-blank"):
            batch.upsert()
        assert api.requests == []

    def test_reconciles_new_and_existing(self, api):
        """Test upsert reconciliation of inserted and updated rows."""
        api.add(
            "POST",
            "/crm/v3/objects/companies/batch/upsert",
            json={
                "results": [
                    {"id": "9", "new": True, "properties": {"domain": "new.com", "name": "Fresh"}},
                    {"id": "1", "new": False, "properties": {"domain": "company1.com", "name": "Renamed"}},
                ]
            },
        )
        fresh = Company(domain="new.com", name="Fresh")
        renamed = existing_company(1, name="Renamed")
        batch = Batch([fresh, renamed], id_property="domain")

        assert batch.upsert() is True

        assert fresh.id == 9
        assert fresh.changes == {}
        assert renamed.changes == {}
        assert renamed.properties["name"] == "Renamed"
        assert request_json(api.requests[0])["inputs"] == [
            {"id": "new.com", "idProperty": "domain", "properties": {"domain": "new.com", "name": "Fresh"}},
            {"id": "company1.com", "idProperty": "domain", "properties": {"name": "Renamed"}},
        ]

    def test_custom_matcher(self, api):
        """Test upsert with a caller-supplied matcher."""
        api.add(
            "POST",
            "/crm/v3/objects/companies/batch/upsert",
            json={"results": [{"id": "1", "new": False, "properties": {"name": "Renamed"}}]},
        )
        target = existing_company(1, name="Renamed")
        other = existing_company(2, name="Renamed")
        matched = []

        def by_id(resource, result):
            matched.append(resource.id)
            return resource.id == int(result["id"])

        Batch([other, target], id_property="domain").upsert(resource_matcher=by_id)

        assert target.changes == {}
        assert other.changes == {"name": "Renamed"}
        assert matched == [2, 1]

    def test_matcher_must_take_two_arguments(self):
        """Test matcher validation."""
        with pytest.raises(ArgumentError):
            Batch(resource_matcher=lambda resource: True)
        with pytest.raises(ArgumentError):
            Batch(resource_matcher="not callable")


class TestArchive:
    def test_archive_sends_ids_only(self, api):
        """Test archive inputs and that results are not reconciled."""
        api.add("POST", "/crm/v3/objects/companies/batch/archive", json={"results": [{"id": "1", "properties": {"name": "Changed"}}]})
        companies = [existing_company(1, name="Changed"), existing_company(2)]

        assert Batch(companies).archive() is True

        assert request_json(api.requests[0]) == {"inputs": [{"id": 1}, {"id": 2}]}
        assert companies[0].changes == {"name": "Changed"}

    def test_archive_by_id_property(self, api):
        """Test archive keyed by a custom id property."""
        api.add("POST", "/crm/v3/objects/companies/batch/archive", json={})

        assert Batch([existing_company(1)], id_property="domain").archive() is True

        assert request_json(api.requests[0]) == {"inputs": [{"id": "company1.com", "idProperty": "domain"}]}


class TestRead:
    def test_read_returns_batch(self, api):
        """Test Batch.read."""
        api.add(
            "POST",
            "/crm/v3/objects/contacts/batch/read",
            json={"results": [{"id": "1", "properties": {"email": "a@b.c"}}]},
        )

        batch = Batch.read(Contact, [1])

        assert isinstance(batch, Batch)
        assert batch.contacts[0].email == "a@b.c"

    def test_read_with_id_property(self, api):
        """Test Batch.read with a custom id property."""
        api.add("POST", "/crm/v3/objects/contacts/batch/read", json={"results": []})

        batch = Batch.read(Contact, ["a@b.c"], id_property="email")

        assert batch.id_property == "email"
        assert request_json(api.requests[0])["idProperty"] == "email"

    @pytest.mark.parametrize("bad", [str, Resource, "contacts", Contact(email="x")])
    def test_read_rejects_non_resource_classes(self, bad):
        """Test Batch.read with something that is not a resource type."""
        with pytest.raises(ArgumentError, match="valid Hubspot resource class"):
            Batch.read(bad, [1])


class TestMatchers:
    def test_match_created(self):
        """Test matching new records by their changes."""
        contact = Contact(email="a@b.c")

        assert match_created(contact, {"properties": {"email": "a@b.c", "hs_object_id": "1"}})
        assert not match_created(contact, {"properties": {"email": "x@y.z"}})
        assert not match_created(existing_contact(1, firstname="New"), {"properties": {"firstname": "New"}})

    def test_match_by_id(self):
        """Test matching by numeric id."""
        assert match_by_id(existing_contact(3), {"id": "3"})
        assert not match_by_id(existing_contact(3), {"id": "4"})
        assert not match_by_id(existing_contact(3), {})

    def test_property_matcher(self):
        """Test matching by property value."""
        matcher = property_matcher("email")

        assert matcher(existing_contact(1), {"properties": {"email": "contact_1@example.com"}})
        assert not matcher(existing_contact(1), {"properties": {}})


class TestBatchResponse:
    def test_status_predicates(self):
        """Test status code predicates."""
        assert BatchResponse(200).all_successful()
        assert BatchResponse(207).partial_success()
        assert not BatchResponse(201).all_successful()

    def test_results_and_errors_default_empty(self):
        """Test results and errors default to empty lists."""
        response = BatchResponse(200, {})

        assert response.results == []
        assert response.errors == []
