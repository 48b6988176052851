"""
Normalization of the API's "one-or-many" response shape.

Tradier emits a bare object when a collection holds exactly one element and
an array otherwise (``{"quotes": {"quote": {...}}}`` vs ``{"quotes":
{"quote": [{...}, {...}]}}``), and the string ``"null"`` when it is empty.
The helpers here always hand callers a list.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, List, Optional, Tuple, Type, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from tradier_client.core.exceptions import DecodeError

T = TypeVar("T")

_EMPTY_MARKERS = (None, "null", "")


@lru_cache(maxsize=None)
def _adapters(model: Any) -> Tuple[TypeAdapter, TypeAdapter]:
    return TypeAdapter(model), TypeAdapter(List[model])


def _type_name(model: Any) -> str:
    return getattr(model, "__name__", repr(model))


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


def normalize(raw: Union[bytes, bytearray, str], model: Type[T]) -> List[T]:
    """
    Decode JSON text that holds either one ``model`` or an array of them.

    A single instance is tried first and wrapped in a list; otherwise the
    array is returned as decoded (possibly empty), in emission order.

    Raises:
        DecodeError: if the payload is neither shape.
    """
    single, many = _adapters(model)
    try:
        return [single.validate_json(raw)]
    except ValidationError:
        pass
    try:
        return list(many.validate_json(raw))
    except ValidationError as exc:
        raise DecodeError(
            f"payload is neither a {_type_name(model)} nor a list of them "
            f"({_first_error(exc)})"
        ) from exc


def normalize_payload(value: Any, model: Type[T]) -> List[T]:
    """Same as :func:`normalize` for an already-decoded JSON value."""
    single, many = _adapters(model)
    try:
        return [single.validate_python(value)]
    except ValidationError:
        pass
    try:
        return list(many.validate_python(value))
    except ValidationError as exc:
        raise DecodeError(
            f"payload is neither a {_type_name(model)} nor a list of them "
            f"({_first_error(exc)})"
        ) from exc


def extract(payload: Any, *path: str) -> Optional[Any]:
    """
    Walk nested objects, returning None when a level is missing, not an
    object, or one of the API's empty markers (``null``/``"null"``).
    """
    current = payload
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    if current in _EMPTY_MARKERS:
        return None
    return current


def collection(payload: Any, model: Type[T], *path: str) -> List[T]:
    """Normalize the one-or-many collection found at ``path`` (missing -> [])."""
    value = extract(payload, *path)
    if value is None:
        return []
    return normalize_payload(value, model)


__all__ = ["normalize", "normalize_payload", "extract", "collection"]
