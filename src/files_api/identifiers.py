"""Identifier parsing at the API boundary.

Record ids are ``bson.ObjectId`` everywhere past this module. ``parentId``
additionally accepts the root sentinel ``"0"``, which stays a plain string so
it can never compare equal to a real id.
"""

from typing import Union

from bson import ObjectId
from bson.errors import InvalidId

from files_api.errors import ValidationError

ROOT_PARENT_ID = "0"

ParentId = Union[ObjectId, str]


def parse_object_id(value, field: str) -> ObjectId:
    """Parse ``value`` into an ``ObjectId`` or raise ``ValidationError`` for ``field``."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not value:
        raise ValidationError(field, f"Invalid {field}")
    try:
        return ObjectId(value)
    except InvalidId:
        raise ValidationError(field, f"Invalid {field}") from None


def parse_parent_id(value) -> ParentId:
    """Parse a ``parentId`` into the root sentinel or an ``ObjectId``.

    ``None`` and ``0`` mean root. Anything else must be a 24-character hex id.
    """
    if value is None or value == 0 or value == ROOT_PARENT_ID:
        return ROOT_PARENT_ID
    return parse_object_id(value, "parentId")


def format_parent_id(parent_id: ParentId) -> str:
    return parent_id if parent_id == ROOT_PARENT_ID else str(parent_id)
