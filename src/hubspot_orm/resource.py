"""
Generic HubSpot resource.

A Resource is an open, string-keyed record: any field the API returns is
readable as an attribute, and assigning to an attribute records a pending
change. ``properties`` holds the last known server values, ``changes`` the
local edits not yet saved, and ``metadata`` system fields such as
timestamps and the internal object id.

Subclasses only declare naming and metadata rules; everything else
(CRUD, listing, search, schema, batch reads) lives here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping

import structlog

from hubspot_orm.cache import property_cache
from hubspot_orm.client import ApiClient, get_client
from hubspot_orm.exceptions import ArgumentError, HubspotError, NothingToDoError, RequestError
from hubspot_orm.filters import build_filter_groups
from hubspot_orm.paged_batch import PagedBatch
from hubspot_orm.paged_collection import PagedCollection
from hubspot_orm.property import Property

if TYPE_CHECKING:
    from hubspot_orm.batch import Batch

logger = structlog.get_logger(__name__)


class Resource:
    """
    Base class for every HubSpot object type.

    Example:
        contact = Contact.find(123, properties=["email", "firstname"])
        contact.firstname = "Jane"
        contact.save()

        new_contact = Contact(email="jane@example.com")
        new_contact.save()  # POST, sets new_contact.id
    """

    API_ROOT = "/crm/v3/objects"
    PROPERTIES_ROOT = "/crm/v3/properties"

    # Overrides the name derived from the class name
    RESOURCE_NAME: str | None = None

    # Properties fetched on every read, whatever the caller asks for
    REQUIRED_PROPERTIES: tuple[str, ...] = ()

    # Properties treated as system data rather than business data
    METADATA_FIELDS: frozenset[str] = frozenset({"createdate", "hs_object_id", "lastmodifieddate"})

    # Instance attributes stored directly rather than as tracked fields
    _ATTRIBUTES = frozenset({"id", "properties", "changes", "metadata"})

    def __init__(self, data: Mapping[str, Any] | None = None, **attributes: Any):
        data = {str(k): v for k, v in {**(data or {}), **attributes}.items()}
        raw_id = data.pop("id", None)

        self.id = self._extract_id(raw_id) if raw_id is not None else None
        self.properties: dict[str, Any] = {}
        self.changes: dict[str, Any] = {}
        self.metadata: dict[str, Any] = {}

        if self.id is not None and self._is_api_response(data):
            self._initialize_from_api(data)
        else:
            # Built locally: every field is a pending change
            self.changes = data

    def _initialize_from_api(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            if key != "properties":
                self.metadata[key] = value

        for key, value in (data.get("properties") or {}).items():
            if self._is_metadata_field(key):
                self.metadata[key] = value
            else:
                self.properties[key] = value

    def _is_api_response(self, data: Mapping[str, Any]) -> bool:
        return isinstance(data.get("properties"), Mapping)

    def _is_metadata_field(self, key: str) -> bool:
        return key in self.METADATA_FIELDS

    @staticmethod
    def _extract_id(value: Any) -> Any:
        try:
            return int(value)
        except (TypeError, ValueError):
            return value

    # -------------------------------------------------------------------------
    # Dynamic fields
    # -------------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        if name.startswith("_") or name in self._ATTRIBUTES:
            raise AttributeError(name)

        changes = self.__dict__.get("changes", {})
        if name in changes:
            return changes[name]
        properties = self.__dict__.get("properties", {})
        if name in properties:
            return properties[name]

        raise AttributeError(f"{type(self).__name__!r} object has no field {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if (
            name.startswith("_")
            or name in self._ATTRIBUTES
            or isinstance(getattr(type(self), name, None), property)
        ):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def get(self, name: str, default: Any = None) -> Any:
        """Pending value if changed, else the last known value."""
        if name == "id":
            return self.id
        if name in self.changes:
            return self.changes[name]
        return self.properties.get(name, default)

    def set(self, name: str, value: Any) -> Any:
        """
        Record a pending change.

        Setting a field back to its last known value drops the change.
        """
        if self.properties.get(name) != value:
            self.changes[name] = value
        else:
            self.changes.pop(name, None)
        return value

    def __getitem__(self, name: str) -> Any:
        if name in self:
            return self.get(name)
        raise KeyError(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self.changes or name in self.properties

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} id={self.id!r} "
            f"properties={self.properties!r} changes={self.changes!r}>"
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def is_persisted(self) -> bool:
        return self.id is not None

    def has_changes(self) -> bool:
        return bool(self.changes)

    # -------------------------------------------------------------------------
    # Instance operations
    # -------------------------------------------------------------------------

    def save(self) -> bool:
        """
        Create or update this record.

        An update that the API rejects returns False and leaves the pending
        changes in place.
        """
        if not self.is_persisted():
            return self._create_new()

        try:
            result = type(self).update_by_id(self.id, self.changes)
        except RequestError as e:
            logger.warning(
                "Save failed",
                resource=self.resource_name(),
                id=self.id,
                error=str(e),
            )
            return False

        if not result:
            return False

        self.properties.update(self.changes)
        self.changes = {}
        return True

    def save_strict(self) -> bool:
        """Like save(), but refuses to run without pending changes."""
        if not self.has_changes():
            raise NothingToDoError("No changes to save")
        return self.save()

    def update(self, attributes: Mapping[str, Any]) -> bool:
        """Apply ``attributes`` as changes and save them."""
        if not self.is_persisted():
            raise HubspotError("Not able to update as not persisted")

        self.update_attributes(attributes)
        return self.save()

    def update_attributes(self, attributes: Mapping[str, Any]) -> None:
        """Apply ``attributes`` as local changes without saving."""
        if not isinstance(attributes, Mapping):
            raise ArgumentError("attributes must be a mapping")

        for key, value in attributes.items():
            self.set(str(key), value)

    def delete(self) -> bool:
        return type(self).archive_by_id(self.id)

    archive = delete

    def _create_new(self) -> bool:
        created = type(self).create(self.changes)
        self.id = created.id
        if self.id is None:
            return False

        self.properties.update(self.changes)
        self.properties.update(created.properties)
        self.metadata.update(created.metadata)
        self.changes = {}
        return True

    # -------------------------------------------------------------------------
    # Naming and URLs
    # -------------------------------------------------------------------------

    @classmethod
    def resource_name(cls) -> str:
        """Lowercased, pluralised class name: Company -> companies."""
        if cls.RESOURCE_NAME:
            return cls.RESOURCE_NAME
        name = cls.__name__.lower()
        if name.endswith("y"):
            return name[:-1] + "ies"
        return name + "s"

    @classmethod
    def _collection_path(cls) -> str:
        return f"{cls.API_ROOT}/{cls.resource_name()}"

    @classmethod
    def _object_path(cls, object_id: Any) -> str:
        return f"{cls._collection_path()}/{object_id}"

    @classmethod
    def _client(cls) -> ApiClient:
        return get_client()

    @classmethod
    def _build_property_list(cls, properties: Iterable[str] | None = None) -> list[str]:
        """Required properties first, then the requested ones, deduplicated."""
        combined: list[str] = []
        for name in (*cls.REQUIRED_PROPERTIES, *(properties or ())):
            if name not in combined:
                combined.append(name)
        return combined

    # -------------------------------------------------------------------------
    # Type-level CRUD
    # -------------------------------------------------------------------------

    @classmethod
    def find(cls, object_id: Any, properties: Iterable[str] | None = None) -> Resource:
        """Fetch one record by its HubSpot id."""
        params: dict[str, Any] = {}
        all_properties = cls._build_property_list(properties)
        if all_properties:
            params["properties"] = all_properties

        response = cls._client().get(cls._object_path(object_id), params=params)
        return cls(response.data)

    @classmethod
    def find_by(
        cls,
        property_name: str,
        value: Any,
        properties: Iterable[str] | None = None,
    ) -> Resource:
        """Fetch one record by another unique property, e.g. email."""
        params: dict[str, Any] = {"idProperty": property_name}
        all_properties = cls._build_property_list(properties)
        if all_properties:
            params["properties"] = all_properties

        response = cls._client().get(cls._object_path(value), params=params)
        return cls(response.data)

    @classmethod
    def create(cls, properties: Mapping[str, Any]) -> Resource:
        response = cls._client().post(
            cls._collection_path(), json={"properties": dict(properties)}
        )
        return cls(response.data)

    @classmethod
    def update_by_id(cls, object_id: Any, properties: Mapping[str, Any]) -> bool:
        cls._client().patch(cls._object_path(object_id), json={"properties": dict(properties)})
        return True

    @classmethod
    def archive_by_id(cls, object_id: Any) -> bool:
        cls._client().delete(cls._object_path(object_id))
        return True

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    @classmethod
    def list(cls, params: Mapping[str, Any] | None = None) -> PagedCollection:
        """Lazy collection over the list endpoint."""
        query = dict(params or {})
        all_properties = cls._build_property_list(query.pop("properties", None))
        if all_properties:
            query["properties"] = all_properties

        return PagedCollection(
            url=cls._collection_path(),
            params=query,
            resource_class=cls,
        )

    @classmethod
    def search(
        cls,
        query: str | Mapping[str, Any],
        properties: Iterable[str] | None = None,
        page_size: int = 100,
    ) -> PagedCollection:
        """
        Lazy collection over the search endpoint.

        ``query`` is either free text or a mapping of suffixed filters, e.g.
        ``{"email_contains": "acme.com", "createdate_gte": "2024-01-01"}``.
        """
        body: dict[str, Any] = {}

        all_properties = cls._build_property_list(properties)
        if all_properties:
            body["properties"] = all_properties

        if isinstance(query, str):
            body["query"] = query
        elif isinstance(query, Mapping):
            body["filterGroups"] = build_filter_groups(query)
        else:
            raise ArgumentError("query must be either a string or a mapping")

        body["limit"] = page_size

        return PagedCollection(
            url=f"{cls._collection_path()}/search",
            params=body,
            resource_class=cls,
            method="post",
        )

    @classmethod
    def all(cls) -> PagedCollection:
        """Every record, via the search endpoint (so total() is available)."""
        return cls.search({})

    @classmethod
    def where(cls, filters: Mapping[str, Any] | None = None, **kwargs: Any) -> PagedCollection:
        return cls.search({**(filters or {}), **kwargs})

    @classmethod
    def select(cls, *properties: str) -> PagedCollection:
        return cls.all().select(*properties)

    # -------------------------------------------------------------------------
    # Batch reads
    # -------------------------------------------------------------------------

    @classmethod
    def batch_read(
        cls,
        object_ids: Iterable[Any],
        properties: Iterable[str] | None = None,
        id_property: str = "id",
    ) -> PagedBatch:
        params: dict[str, Any] = {}
        all_properties = cls._build_property_list(properties)
        if all_properties:
            params["properties"] = all_properties
        if id_property != "id":
            params["idProperty"] = id_property

        return PagedBatch(
            url=f"{cls._collection_path()}/batch/read",
            params=params,
            resource_class=cls,
            object_ids=object_ids,
        )

    @classmethod
    def batch_read_all(
        cls,
        object_ids: Iterable[Any],
        properties: Iterable[str] | None = None,
        id_property: str = "id",
    ) -> Batch:
        """Read every id up front and wrap the records in a Batch."""
        from hubspot_orm.batch import Batch

        resources = cls.batch_read(object_ids, properties=properties, id_property=id_property).all()
        return Batch(resources, id_property=id_property)

    # -------------------------------------------------------------------------
    # Property schema
    # -------------------------------------------------------------------------

    @classmethod
    def all_properties(cls) -> list[Property]:
        """Every property definition for this type (cached per process)."""
        return property_cache.get_or_load(cls.resource_name(), cls._fetch_properties)

    @classmethod
    def _fetch_properties(cls) -> list[Property]:
        response = cls._client().get(f"{cls.PROPERTIES_ROOT}/{cls.resource_name()}")
        results = (response.data or {}).get("results") or []
        logger.debug("Loaded property schema", resource=cls.resource_name(), count=len(results))
        return [Property.model_validate(item) for item in results]

    @classmethod
    def clear_property_cache(cls) -> None:
        property_cache.invalidate(cls.resource_name())

    @classmethod
    def custom_properties(cls) -> list[Property]:
        return [p for p in cls.all_properties() if p.is_custom]

    @classmethod
    def updatable_properties(cls) -> list[Property]:
        return [p for p in cls.all_properties() if not p.is_read_only]

    @classmethod
    def read_only_properties(cls) -> list[Property]:
        return [p for p in cls.all_properties() if p.is_read_only]

    @classmethod
    def find_property(cls, name: str) -> Property | None:
        return next((p for p in cls.all_properties() if p.name == name), None)

    @classmethod
    def full_property_list(cls) -> dict[str, str]:
        """Property name -> description (or label)."""
        return {p.name: p.summary for p in cls.all_properties()}

    @classmethod
    def custom_property_list(cls) -> dict[str, str]:
        return {p.name: p.summary for p in cls.custom_properties()}
