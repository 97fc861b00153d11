"""
Bulk create/update/upsert/archive.

A Batch holds records of one resource type, sends their pending changes in
chunks to the batch endpoints, and writes the server's answers back onto
the same local objects.
"""

import inspect
from typing import Any, Callable, Iterable, Iterator, Mapping

import structlog

from hubspot_orm.client import ApiClient, get_client
from hubspot_orm.exceptions import ArgumentError
from hubspot_orm.filters import is_blank
from hubspot_orm.resource import Resource

logger = structlog.get_logger(__name__)

Matcher = Callable[[Any, Mapping[str, Any]], bool]


class BatchResponse:
    """One chunk's parsed response with its HTTP status preserved."""

    def __init__(self, status_code: int, data: Mapping[str, Any] | None = None):
        self.status_code = status_code
        self.data = dict(data or {})

    def __repr__(self) -> str:
        return (
            f"<BatchResponse status_code={self.status_code} "
            f"results={len(self.results)} errors={len(self.errors)}>"
        )

    def all_successful(self) -> bool:
        return self.status_code == 200

    def partial_success(self) -> bool:
        """207 Multi-Status: some inputs succeeded, some failed."""
        return self.status_code == 207

    @property
    def results(self) -> list[dict[str, Any]]:
        return self.data.get("results") or []

    @property
    def errors(self) -> list[dict[str, Any]]:
        return self.data.get("errors") or []


# ---------------------------------------------------------------------------
# Matchers: pick the local record a result belongs to
# ---------------------------------------------------------------------------

def match_created(resource: Any, result: Mapping[str, Any]) -> bool:
    """An unsaved record whose every pending change appears in the result."""
    if resource.is_persisted() or not resource.changes:
        return False
    properties = result.get("properties") or {}
    return all(
        key in properties and properties[key] == value
        for key, value in resource.changes.items()
    )


def match_by_id(resource: Any, result: Mapping[str, Any]) -> bool:
    result_id = result.get("id")
    if result_id is None:
        return False
    return resource.id == Resource._extract_id(result_id)


def property_matcher(id_property: str) -> Matcher:
    """Match on the value the result carries for ``id_property``."""
    def _match(resource: Any, result: Mapping[str, Any]) -> bool:
        properties = result.get("properties") or {}
        if id_property not in properties:
            return False
        return resource.get(id_property) == properties[id_property]
    return _match


class Batch:
    """
    Bulk operations over records of a single type.

    Example:
        contacts = [Contact(email=e) for e in emails]
        batch = Batch(contacts)
        batch.create()  # ids are set on each Contact

        batch = Batch(companies, id_property="domain")
        batch.upsert()
        if batch.any_failed():
            ...
    """

    CONTACT_LIMIT = 10
    DEFAULT_LIMIT = 100

    def __init__(
        self,
        resources: Iterable[Any] = (),
        id_property: str = "id",
        resource_matcher: Matcher | None = None,
        client: ApiClient | None = None,
    ):
        self.id_property = id_property
        self.resources: list[Any] = []
        self.responses: list[BatchResponse] = []

        self._resource_matcher = self._validate_resource_matcher(resource_matcher)
        self._action: str | None = None
        self._client = client

        for resource in resources:
            self.add_resource(resource)

    def __repr__(self) -> str:
        return (
            f"<Batch resource_count={len(self.resources)} "
            f"id_property={self.id_property!r} resource_type={self.resource_type} "
            f"responses_count={len(self.responses)}>"
        )

    def __len__(self) -> int:
        return len(self.resources)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.resources)

    def __getattr__(self, name: str) -> Any:
        # batch.contacts, batch.companies, ... alias the record list
        resources = self.__dict__.get("resources")
        if resources and name == resources[0].resource_name():
            return resources
        raise AttributeError(name)

    @property
    def client(self) -> ApiClient:
        return self._client or get_client()

    @property
    def resource_type(self) -> str | None:
        return self.resources[0].resource_name() if self.resources else None

    def add_resource(self, resource: Any) -> None:
        if self.resources and self.resource_type != resource.resource_name():
            raise ArgumentError("All resources in a batch must be of the same type")
        self.resources.append(resource)

    def any_changes(self) -> bool:
        return any(resource.has_changes() for resource in self.resources)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def create(self) -> bool:
        return self._save("create")

    def update(self) -> bool:
        return self._save("update")

    def upsert(self, resource_matcher: Matcher | None = None) -> bool:
        """Create-or-update keyed on ``id_property`` (which cannot be "id")."""
        if resource_matcher is not None:
            self._resource_matcher = self._validate_resource_matcher(resource_matcher)
        self._validate_upsert_conditions()
        return self._save("upsert")

    def archive(self) -> bool:
        return self._save("archive")

    # -------------------------------------------------------------------------
    # Outcome
    # -------------------------------------------------------------------------

    def all_successful(self) -> bool:
        return all(response.all_successful() for response in self.responses)

    def partial_success(self) -> bool:
        # A mix of fully successful and partial chunks reports False here
        return any(r.partial_success() for r in self.responses) and not any(
            r.all_successful() for r in self.responses
        )

    def any_failed(self) -> bool:
        return any(
            not response.all_successful() and not response.partial_success()
            for response in self.responses
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _save(self, action: str) -> bool:
        if not self.resources:
            raise ArgumentError("Batch is empty")

        self._action = action
        resource_type = self.resource_type
        inputs = self._gather_inputs()

        log = logger.bind(action=action, resource_type=resource_type)
        if not inputs:
            log.info("Nothing to send for batch")
            return False

        limit = self.batch_size_limit(resource_type)
        try:
            for start in range(0, len(inputs), limit):
                chunk = inputs[start:start + limit]
                response = self._batch_request(resource_type, chunk, action)
                self.responses.append(response)
                log.info(
                    "Batch chunk sent",
                    inputs=len(chunk),
                    status_code=response.status_code,
                    errors=len(response.errors),
                )
        finally:
            # Chunks the server accepted are reconciled even if a later one raised
            if action != "archive":
                self._process_responses()

        return not self.any_failed()

    @classmethod
    def batch_size_limit(cls, resource_type: str | None) -> int:
        return cls.CONTACT_LIMIT if resource_type == "contacts" else cls.DEFAULT_LIMIT

    def _id_for(self, resource: Any) -> Any:
        return resource.get(self.id_property)

    def _id_property_field(self) -> dict[str, str]:
        return {} if self.id_property == "id" else {"idProperty": self.id_property}

    def _gather_inputs(self) -> list[dict[str, Any]]:
        if self._action == "archive":
            return [
                {"id": self._id_for(resource), **self._id_property_field()}
                for resource in self.resources
            ]

        inputs = []
        for resource in self.resources:
            if not resource.changes:
                continue
            item: dict[str, Any] = {}
            resource_id = self._id_for(resource)
            if resource_id is not None:
                item["id"] = resource_id
            item.update(self._id_property_field())
            item["properties"] = dict(resource.changes)
            inputs.append(item)
        return inputs

    def _batch_request(self, resource_type: str, inputs: list[dict[str, Any]], action: str) -> BatchResponse:
        response = self.client.post(
            f"{Resource.API_ROOT}/{resource_type}/batch/{action}",
            json={"inputs": inputs},
        )
        return BatchResponse(response.status_code, response.data)

    def _validate_upsert_conditions(self) -> None:
        if self.id_property == "id":
            raise ArgumentError("id_property cannot be 'id' for upsert")

        if any(is_blank(self._id_for(resource)) for resource in self.resources):
            raise ArgumentError(
                f"All resources must have a non-blank value for {self.id_property} to perform upsert"
            )

    @staticmethod
    def _validate_resource_matcher(resource_matcher: Matcher | None) -> Matcher | None:
        if resource_matcher is None:
            return None

        if not callable(resource_matcher):
            raise ArgumentError("resource_matcher must be callable")

        parameters = [
            p for p in inspect.signature(resource_matcher).parameters.values()
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        ]
        if len(parameters) != 2:
            raise ArgumentError("resource_matcher must accept exactly 2 arguments")
        return resource_matcher

    def _process_responses(self) -> None:
        for response in self.responses:
            for result in response.results:
                resource = self._find_resource_for_result(result)
                if resource is None:
                    logger.debug("No local resource matched batch result", id=result.get("id"))
                    continue
                self._apply_result(resource, result)

    def _matcher_for(self, result: Mapping[str, Any]) -> Matcher | None:
        if self._action == "create":
            return match_created
        if self._action == "update":
            return self._update_matcher()
        if self._action == "upsert":
            if result.get("new"):
                return match_created
            return self._resource_matcher or self._update_matcher()
        return None

    def _update_matcher(self) -> Matcher:
        if self.id_property == "id":
            return match_by_id
        return property_matcher(self.id_property)

    def _find_resource_for_result(self, result: Mapping[str, Any]) -> Any:
        matcher = self._matcher_for(result)
        if matcher is None:
            return None
        return next((r for r in self.resources if matcher(r, result)), None)

    @staticmethod
    def _apply_result(resource: Any, result: Mapping[str, Any]) -> None:
        if result.get("id") is not None:
            resource.id = Resource._extract_id(result["id"])

        # Only fields we changed are confirmed; other server fields are ignored
        for key, value in (result.get("properties") or {}).items():
            if key in resource.changes:
                resource.properties[key] = value
                del resource.changes[key]

        if result.get("updatedAt"):
            resource.metadata["updatedAt"] = result["updatedAt"]

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def read(
        cls,
        resource_class: type,
        object_ids: Iterable[Any] = (),
        id_property: str = "id",
    ) -> "Batch":
        """Fetch existing records by id (or by ``id_property``) into a Batch."""
        if not (
            isinstance(resource_class, type)
            and issubclass(resource_class, Resource)
            and resource_class is not Resource
        ):
            raise ArgumentError("Must be a valid Hubspot resource class")

        return resource_class.batch_read_all(object_ids, id_property=id_property)
