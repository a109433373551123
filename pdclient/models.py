from __future__ import annotations

from typing import Any, ClassVar, Dict, FrozenSet, Generic, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

PLACEHOLDER = "PLACEHOLDER"

ESCALATION_POLICY_TYPE = "escalation_policy"
EXTENSION_TYPE = "extension"
EXTENSION_SCHEMA_REFERENCE_TYPE = "extension_schema_reference"
SERVICE_REFERENCE_TYPE = "service_reference"


def _is_unset(value: Any) -> bool:
    return value is None or (isinstance(value, (list, tuple, dict)) and not value)


class Record(BaseModel):
    """Immutable value mirroring a PagerDuty JSON object.

    Serialization drops ``None`` fields and empty sequences, except for the
    field names listed in ``always_serialized`` which the remote API expects
    to be present even when unset (sent as ``null`` or ``[]``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    always_serialized: ClassVar[FrozenSet[str]] = frozenset()

    @model_serializer(mode="wrap")
    def _omit_unset(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        data = handler(self)
        return {
            key: value
            for key, value in data.items()
            if key in self.always_serialized or not _is_unset(value)
        }

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class APIObject(Record):
    id: Optional[str] = None
    type: Optional[str] = None
    summary: Optional[str] = None
    self_url: Optional[str] = Field(default=None, alias="self")
    html_url: Optional[str] = None


class EscalationRule(Record):
    always_serialized: ClassVar[FrozenSet[str]] = frozenset({"targets"})

    id: Optional[str] = None
    delay: Optional[int] = Field(default=None, alias="escalation_delay_in_minutes")
    targets: Tuple[APIObject, ...] = ()


class EscalationPolicy(APIObject):
    type: Optional[str] = ESCALATION_POLICY_TYPE
    name: Optional[str] = None
    rules: Tuple[EscalationRule, ...] = Field(default=(), alias="escalation_rules")
    services: Tuple[APIObject, ...] = ()
    num_loops: Optional[int] = None
    teams: Tuple[APIObject, ...] = ()
    description: Optional[str] = None
    repeat_enabled: Optional[bool] = None


class ExtensionSchema(APIObject):
    pass


class Extension(APIObject):
    """Third-party integration attached to one or more services.

    ``Extension.new()`` starts from placeholder values; the ``with_*`` steps
    each return an updated copy, so they compose in call order and a later
    step overwrites an earlier one for the same field.
    """

    always_serialized: ClassVar[FrozenSet[str]] = frozenset(
        {"endpoint_url", "name", "extension_schema", "extension_objects"}
    )

    type: Optional[str] = EXTENSION_TYPE
    endpoint_url: Optional[str] = None
    name: Optional[str] = None
    extension_schema: Optional[ExtensionSchema] = None
    extension_objects: Tuple[APIObject, ...] = ()

    @classmethod
    def new(cls) -> "Extension":
        return cls(
            type=EXTENSION_TYPE,
            endpoint_url=PLACEHOLDER,
            name=PLACEHOLDER,
            extension_schema=ExtensionSchema(id=PLACEHOLDER, type=PLACEHOLDER),
        )

    def with_service(self, service_id: str) -> "Extension":
        ref = APIObject(id=service_id, type=SERVICE_REFERENCE_TYPE)
        if ref in self.extension_objects:
            return self
        return self.model_copy(update={"extension_objects": self.extension_objects + (ref,)})

    def with_name(self, name: str) -> "Extension":
        return self.model_copy(update={"name": name})

    def with_endpoint(self, endpoint_url: str) -> "Extension":
        return self.model_copy(update={"endpoint_url": endpoint_url})

    def with_schema(self, schema_id: str) -> "Extension":
        schema = ExtensionSchema(id=schema_id, type=EXTENSION_SCHEMA_REFERENCE_TYPE)
        return self.model_copy(update={"extension_schema": schema})

    @property
    def has_placeholders(self) -> bool:
        schema = self.extension_schema
        return (
            self.name == PLACEHOLDER
            or self.endpoint_url == PLACEHOLDER
            or (schema is not None and PLACEHOLDER in (schema.id, schema.type))
        )


M = TypeVar("M", bound=Record)


class ListPage(BaseModel, Generic[M]):
    model_config = ConfigDict(frozen=True)

    limit: int = 0
    offset: int = 0
    more: bool = False
    total: Optional[int] = None
    items: Tuple[M, ...] = ()
