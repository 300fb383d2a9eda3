"""Document validation service for checking documents against collection schemas.

Validation runs two independent passes and reports every violation:
1. Required fields must be present and not None.
2. Fields present in the document must match their declared type and enum.

Default values are applied separately, before validation.
"""

import copy
from collections.abc import Mapping
from numbers import Number
from typing import Any

from cosmodb.domain.entities.results import ValidationIssue, ValidationResult
from cosmodb.domain.entities.schema import FieldSpec, FieldType, Schema
from cosmodb.domain.services.value_compare import strict_equals


def runtime_type_name(value: Any) -> str:
    """Name the schema type of a runtime value.

    Sequences are reported as "array", distinct from mappings ("object").
    Booleans are never numbers.
    """
    if value is None:
        return FieldType.NULL.value
    if isinstance(value, bool):
        return FieldType.BOOLEAN.value
    if isinstance(value, Number):
        return FieldType.NUMBER.value
    if isinstance(value, str):
        return FieldType.STRING.value
    if isinstance(value, (list, tuple)):
        return FieldType.ARRAY.value
    if isinstance(value, Mapping):
        return FieldType.OBJECT.value
    return type(value).__name__


class DocumentValidator:
    """Validator for documents against collection schemas.

    All methods are pure: documents passed in are never mutated.
    """

    @classmethod
    def apply_defaults(cls, document: Mapping[str, Any], schema: Schema | None) -> dict[str, Any]:
        """Return a copy of ``document`` with schema defaults filled in.

        Only fields absent from the document receive a default; explicitly
        provided values, including None, are kept. Defaults are deep-copied
        so container defaults are never shared between documents.
        """
        result = dict(document)
        if schema is None:
            return result

        for name, spec in schema.fields.items():
            if spec.has_default and name not in result:
                result[name] = copy.deepcopy(spec.default)

        return result

    @classmethod
    def check_required(cls, document: Mapping[str, Any], schema: Schema) -> list[ValidationIssue]:
        """Report every required field that is missing or None."""
        issues = []
        for name, spec in schema.fields.items():
            if spec.required and document.get(name) is None:
                issues.append(
                    ValidationIssue(
                        field=name,
                        message=f"Missing required field: {name}",
                        code="required_missing",
                    )
                )
        return issues

    @classmethod
    def check_type(cls, value: Any, spec: FieldSpec) -> ValidationIssue | None:
        """Validate a single value against its declared type."""
        if spec.type is None:
            return None

        actual = runtime_type_name(value)
        if actual != spec.type.value:
            return ValidationIssue(
                field=spec.name,
                message=f"Invalid type for field {spec.name}: expected {spec.type.value}, got {actual}",
                code="invalid_type",
            )
        return None

    @classmethod
    def check_enum(cls, value: Any, spec: FieldSpec) -> ValidationIssue | None:
        """Validate a single value against its allowed values."""
        if spec.enum is None:
            return None

        if not any(strict_equals(value, allowed) for allowed in spec.enum):
            allowed_values = ", ".join(str(allowed) for allowed in spec.enum)
            return ValidationIssue(
                field=spec.name,
                message=f"Invalid value for field {spec.name}: must be one of [{allowed_values}]",
                code="invalid_enum",
            )
        return None

    @classmethod
    def check_types_and_enums(cls, document: Mapping[str, Any], schema: Schema) -> list[ValidationIssue]:
        """Check type and enum constraints for every field present in the document.

        Fields without a schema entry are not checked. None is checked like
        any other value, so it only passes a field typed "null" or an enum
        that lists it.
        """
        issues = []
        for name, value in document.items():
            spec = schema.get(name)
            if spec is None:
                continue

            type_issue = cls.check_type(value, spec)
            if type_issue:
                issues.append(type_issue)

            enum_issue = cls.check_enum(value, spec)
            if enum_issue:
                issues.append(enum_issue)

        return issues

    @classmethod
    def validate(cls, document: Mapping[str, Any], schema: Schema | None) -> ValidationResult:
        """Validate a document against a schema.

        Args:
            document: The document to validate (not mutated).
            schema: The collection schema, or None for schema-less collections.

        Returns:
            ValidationResult listing every violation found.
        """
        if schema is None:
            return ValidationResult(valid=True)

        issues = cls.check_required(document, schema)
        issues.extend(cls.check_types_and_enums(document, schema))

        return ValidationResult(valid=not issues, issues=issues)
