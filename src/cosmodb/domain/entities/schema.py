"""Schema entity for collection field constraints.

A schema maps field names to field definitions. Schemas are parsed
once at registration and are immutable afterwards.
"""

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from cosmodb.core.exceptions import SchemaDefinitionError


class FieldType(str, Enum):
    """Supported field types for collection schemas."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"


# Keys a field descriptor may carry
DESCRIPTOR_KEYS = frozenset({"type", "required", "default", "enum"})


@dataclass(frozen=True)
class FieldSpec:
    """Constraints for a single schema field.

    Attributes:
        name: Field name.
        type: Declared field type, or None for any type.
        required: Whether the field must be present and non-null.
        default: Default value applied when the field is absent.
        has_default: Whether a default was declared. A declared default
            of None still counts.
        enum: Allowed values, or None for no restriction.
    """

    name: str
    type: FieldType | None = None
    required: bool = False
    default: Any = None
    has_default: bool = False
    enum: tuple[Any, ...] | None = None

    @classmethod
    def from_descriptor(cls, name: str, descriptor: Mapping[str, Any]) -> "FieldSpec":
        """Parse a field descriptor mapping such as ``{"type": "string", "required": True}``."""
        if not isinstance(descriptor, Mapping):
            raise SchemaDefinitionError("Field descriptor must be a mapping", field=name)

        unknown = set(descriptor) - DESCRIPTOR_KEYS
        if unknown:
            raise SchemaDefinitionError(
                f"Unknown descriptor keys: {', '.join(sorted(unknown))}", field=name
            )

        field_type = None
        raw_type = descriptor.get("type")
        if raw_type is not None:
            try:
                field_type = FieldType(str(raw_type).lower())
            except ValueError:
                raise SchemaDefinitionError(f"Unknown field type: {raw_type}", field=name) from None

        required = descriptor.get("required", False)
        if not isinstance(required, bool):
            raise SchemaDefinitionError("'required' must be a boolean", field=name)

        enum = descriptor.get("enum")
        if enum is not None:
            if isinstance(enum, (str, bytes)) or not isinstance(enum, (Sequence, set, frozenset)):
                raise SchemaDefinitionError("'enum' must be a list of allowed values", field=name)
            enum = tuple(copy.deepcopy(list(enum)))

        return cls(
            name=name,
            type=field_type,
            required=required,
            default=copy.deepcopy(descriptor.get("default")),
            has_default="default" in descriptor,
            enum=enum,
        )

    def to_descriptor(self) -> dict[str, Any]:
        """Plain descriptor mapping. Values are copies, never the stored defaults."""
        descriptor: dict[str, Any] = {}
        if self.type is not None:
            descriptor["type"] = self.type.value
        if self.required:
            descriptor["required"] = True
        if self.has_default:
            descriptor["default"] = copy.deepcopy(self.default)
        if self.enum is not None:
            descriptor["enum"] = copy.deepcopy(list(self.enum))
        return descriptor


@dataclass(frozen=True)
class Schema:
    """An immutable set of field definitions.

    Attributes:
        name: Registered schema name.
        fields: Read-only mapping of field name to FieldSpec, in declaration order.
    """

    name: str
    fields: Mapping[str, FieldSpec] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_dict(cls, name: str, definition: Mapping[str, Any]) -> "Schema":
        """Build a schema from a plain ``{field: descriptor}`` mapping.

        Raises:
            SchemaDefinitionError: If the definition or any descriptor is invalid.
        """
        if not isinstance(definition, Mapping):
            raise SchemaDefinitionError(f"Schema '{name}' must be a mapping of field descriptors")

        specs = {}
        for field_name, descriptor in definition.items():
            if not isinstance(field_name, str) or not field_name:
                raise SchemaDefinitionError(f"Schema '{name}' has an invalid field name: {field_name!r}")
            specs[field_name] = FieldSpec.from_descriptor(field_name, descriptor)

        return cls(name=name, fields=MappingProxyType(specs))

    def __contains__(self, field_name: object) -> bool:
        return field_name in self.fields

    def get(self, field_name: str) -> FieldSpec | None:
        return self.fields.get(field_name)

    @property
    def required_fields(self) -> list[str]:
        return [spec.name for spec in self.fields.values() if spec.required]

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {name: spec.to_descriptor() for name, spec in self.fields.items()}
