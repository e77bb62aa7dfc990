"""Field whitelists and validation for candidate records and patches.

Both functions return the full list of violations instead of stopping at the
first one, so a caller can report every problem in a single response.
"""

from typing import Any, List, Mapping

from pydantic import ValidationError

from .schemas import Place

REQUIRED_FIELDS = (
    "id",
    "name",
    "status",
    "species",
    "type",
    "gender",
    "origin",
    "location",
    "image",
    "episode",
    "url",
    "created",
)

# Everything but the identifier may be patched
MUTABLE_FIELDS = tuple(f for f in REQUIRED_FIELDS if f != "id")

PLACE_FIELDS = ("origin", "location")


def missing_field_error(field: str) -> str:
    return f"missing field '{field}'"


def shape_error(field: str) -> str:
    return f"field '{field}' must be an object with 'name' and 'url'"


ID_ERROR = "field 'id' must be an integer"


def is_valid_id(value: Any) -> bool:
    # bool is an int subclass; True would collide with id 1
    return isinstance(value, int) and not isinstance(value, bool)


def is_place(value: Any) -> bool:
    """Return True if a raw `origin`/`location` value parses as a `Place`."""
    if not isinstance(value, Mapping):
        return False
    try:
        Place.model_validate(dict(value))
    except ValidationError:
        return False
    return True


def validate_candidate(candidate: Any) -> List[str]:
    """Check a candidate record against the twelve required fields.

    `id` must be a plain integer. The type check on `id` and the shape check
    on `origin`/`location` only run when the field is present, so each field
    contributes at most one error.

    Args:
        candidate: Raw record, normally a dict decoded from JSON.

    Returns:
        Violation messages in field order (empty when the candidate is valid).
    """
    if not isinstance(candidate, Mapping):
        return ["candidate must be an object"]

    errors: List[str] = []
    for field in REQUIRED_FIELDS:
        if field not in candidate:
            errors.append(missing_field_error(field))
        elif field == "id" and not is_valid_id(candidate[field]):
            errors.append(ID_ERROR)
        elif field in PLACE_FIELDS and not is_place(candidate[field]):
            errors.append(shape_error(field))
    return errors


def validate_patch(patch: Mapping[str, Any]) -> List[str]:
    """Check the whitelisted fields present in a patch.

    Only `origin`/`location` are shape-checked; the other mutable fields are
    taken as-is. The `id` key is not handled here.
    """
    errors: List[str] = []
    for field in MUTABLE_FIELDS:
        if field in PLACE_FIELDS and field in patch:
            if not is_place(patch[field]):
                errors.append(shape_error(field))
    return errors
