"""Unified data models for the generated Swagger 2.0 document.

Every extractor (schemas, parameters, responses, routes, meta) writes
into these models; dumping with ``by_alias=True`` yields the wire names.
"""

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")


class Validations(BaseModel):
    """Validation constraints shared by schemas, parameters and headers."""

    model_config = ConfigDict(populate_by_name=True)

    maximum: float | None = None
    exclusive_maximum: bool = Field(False, alias="exclusiveMaximum")
    minimum: float | None = None
    exclusive_minimum: bool = Field(False, alias="exclusiveMinimum")
    multiple_of: float | None = Field(None, alias="multipleOf")
    max_length: int | None = Field(None, alias="maxLength")
    min_length: int | None = Field(None, alias="minLength")
    pattern: str | None = None
    max_items: int | None = Field(None, alias="maxItems")
    min_items: int | None = Field(None, alias="minItems")
    unique_items: bool = Field(False, alias="uniqueItems")

    def set_maximum(self, value: float, exclusive: bool) -> None:
        self.maximum = value
        self.exclusive_maximum = exclusive

    def set_minimum(self, value: float, exclusive: bool) -> None:
        self.minimum = value
        self.exclusive_minimum = exclusive

    def set_multiple_of(self, value: float) -> None:
        self.multiple_of = value

    def set_max_length(self, value: int) -> None:
        self.max_length = value

    def set_min_length(self, value: int) -> None:
        self.min_length = value

    def set_pattern(self, value: str) -> None:
        self.pattern = value

    def set_max_items(self, value: int) -> None:
        self.max_items = value

    def set_min_items(self, value: int) -> None:
        self.min_items = value

    def set_unique(self, value: bool) -> None:
        self.unique_items = value

    def transfer_to(self, other: "Validations") -> None:
        """Move every constraint set on this object onto ``other``."""
        for name, info in Validations.model_fields.items():
            value = getattr(self, name)
            if value != info.default:
                setattr(other, name, value)
                setattr(self, name, info.default)


class Schema(Validations):
    """Structural description of one type, inline or by ``$ref``."""

    ref: str | None = Field(None, alias="$ref")
    type: str | None = None
    format: str | None = None
    title: str | None = None
    description: str | None = None
    required: list[str] = []  # ordered set, see add_required/remove_required
    properties: dict[str, "Schema"] = {}
    items: "Schema | None" = None
    read_only: bool = Field(False, alias="readOnly")

    def typed(self, type_: str, format_: str | None = None) -> None:
        self.ref = None
        self.type = type_
        self.format = format_ or None

    def set_ref(self, ref: str) -> None:
        self.ref = ref
        self.type = None
        self.format = None

    def add_required(self, name: str) -> None:
        if name not in self.required:
            self.required.append(name)

    def remove_required(self, name: str) -> None:
        if name in self.required:
            self.required.remove(name)

    def set_read_only(self, value: bool) -> None:
        self.read_only = value


class Parameter(Validations):
    """A single operation parameter (query, path, header or body)."""

    ref: str | None = Field(None, alias="$ref")
    name: str = ""
    location: str | None = Field(None, alias="in")
    description: str | None = None
    required: bool = False
    type: str | None = None
    format: str | None = None
    items: Schema | None = None
    collection_format: str | None = Field(None, alias="collectionFormat")
    schema_: Schema | None = Field(None, alias="schema")

    def typed(self, type_: str, format_: str | None = None) -> None:
        self.type = type_
        self.format = format_ or None

    def set_collection_format(self, value: str) -> None:
        self.collection_format = value

    def set_required(self, value: bool) -> None:
        self.required = value

    def set_location(self, value: str) -> None:
        self.location = value.lower()


class Header(Validations):
    """A response header."""

    type: str | None = None
    format: str | None = None
    description: str | None = None
    items: Schema | None = None
    collection_format: str | None = Field(None, alias="collectionFormat")

    def typed(self, type_: str, format_: str | None = None) -> None:
        self.type = type_
        self.format = format_ or None

    def set_collection_format(self, value: str) -> None:
        self.collection_format = value


class Response(BaseModel):
    """A response, inline or by ``$ref``."""

    model_config = ConfigDict(populate_by_name=True)

    ref: str | None = Field(None, alias="$ref")
    description: str = ""
    schema_: Schema | None = Field(None, alias="schema")
    headers: dict[str, Header] = {}


class OperationResponses(BaseModel):
    """Status code → response map plus the optional default response."""

    default: Response | None = None
    codes: dict[int, Response] = {}

    @model_validator(mode="before")
    @classmethod
    def _unflatten(cls, data):
        if isinstance(data, dict) and "codes" not in data:
            rest = dict(data)
            default = rest.pop("default", None)
            return {"default": default, "codes": {int(k): v for k, v in rest.items()}}
        return data

    @model_serializer(mode="wrap")
    def _flatten(self, handler):
        data = handler(self)
        flat = dict(data.get("codes") or {})
        if data.get("default") is not None:
            flat["default"] = data["default"]
        return flat


class Operation(BaseModel):
    """One method + path entry of the document."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field("", alias="operationId")
    tags: list[str] = []
    summary: str | None = None
    description: str | None = None
    consumes: list[str] = []
    produces: list[str] = []
    schemes: list[str] = []
    security: list[dict[str, list[str]]] = []
    parameters: list[Parameter] = []
    responses: OperationResponses = OperationResponses()

    def add_tags(self, tags: list[str]) -> None:
        for tag in tags:
            if tag not in self.tags:
                self.tags.append(tag)

    def set_parameter(self, param: Parameter) -> None:
        """Add ``param``, replacing an earlier one with the same name and location."""
        for i, existing in enumerate(self.parameters):
            if existing.name == param.name and existing.location == param.location:
                self.parameters[i] = param
                return
        self.parameters.append(param)

    def set_responses(self, default: Response | None, codes: dict[int, Response]) -> None:
        self.responses = OperationResponses(default=default, codes=codes)


class PathItem(BaseModel):
    """All operations available on one path template."""

    get: Operation | None = None
    put: Operation | None = None
    post: Operation | None = None
    delete: Operation | None = None
    options: Operation | None = None
    head: Operation | None = None
    patch: Operation | None = None

    def operations(self) -> dict[str, Operation]:
        return {m: getattr(self, m) for m in HTTP_METHODS if getattr(self, m) is not None}


class Contact(BaseModel):
    name: str | None = None
    email: str | None = None
    url: str | None = None


class License(BaseModel):
    name: str | None = None
    url: str | None = None


class Info(BaseModel):
    """Document level metadata."""

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    version: str | None = None
    terms_of_service: str | None = Field(None, alias="termsOfService")
    contact: Contact | None = None
    license: License | None = None


class SwaggerDocument(BaseModel):
    """Root aggregate of a scan."""

    model_config = ConfigDict(populate_by_name=True)

    swagger: str = "2.0"
    info: Info = Info()
    host: str | None = None
    base_path: str | None = Field(None, alias="basePath")
    schemes: list[str] = []
    consumes: list[str] = []
    produces: list[str] = []
    security: list[dict[str, list[str]]] = []
    paths: dict[str, PathItem] = {}
    definitions: dict[str, Schema] = {}
    parameters: dict[str, Parameter] = {}
    responses: dict[str, Response] = {}

    def operations_by_id(self) -> dict[str, Operation]:
        """Index every operation already in the document by its id."""
        index = {}
        for item in self.paths.values():
            for op in item.operations().values():
                if op.id:
                    index[op.id] = op
        return index

    def detach_operation(self, op_id: str) -> None:
        """Remove the operation with ``op_id`` from whatever path holds it."""
        for path, item in list(self.paths.items()):
            for method, op in item.operations().items():
                if op.id == op_id:
                    setattr(item, method, None)
            if not item.operations():
                del self.paths[path]

    def to_dict(self) -> dict:
        data = self.model_dump(by_alias=True, exclude_defaults=True)
        return {"swagger": self.swagger, **data}


Schema.model_rebuild()
