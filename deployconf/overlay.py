"""Typed-overlay codec for user-authored resource definitions.

Every resource is decoded into two representations that stay paired for
the lifetime of the object:

- the typed view: a pydantic model exposing the validated, modeled fields
- the raw overlay: a verbatim deep copy of the user's mapping

Encoding dumps the typed view (only the fields that were present in the
input or assigned afterwards) and deep-merges it over the raw overlay, so
fields the typed model does not know about survive unchanged.

Usage:
    bucket = decode(GCSBucket, b"properties: {name: b, location: US}")
    bucket.ttl_days = 7
    document = encode(bucket)
"""

import copy
import json
import logging
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

import yaml
from pydantic import BaseModel, ConfigDict, PrivateAttr, model_serializer
from pydantic import ValidationError as PydanticValidationError
from pydantic import SerializerFunctionWrapHandler

from .exceptions import DecodeError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound="OverlayModel")

RawOverlay = Dict[str, Any]


class OverlayModel(BaseModel):
    """Base class for typed views paired with a raw overlay.

    Unknown fields are ignored by the typed view; they live in the raw
    overlay instead. Mutations must be made by attribute assignment on the
    owning model so they are picked up by ``exclude_unset`` dumps.

    Aliased fields are populated from their alias only, both when decoding
    and when constructing in code. A key spelled as the Python field name is
    unknown to the typed view and passes through as raw data.
    """

    model_config = ConfigDict(extra="ignore")

    _raw: Optional[RawOverlay] = PrivateAttr(default=None)

    @model_serializer(mode="wrap")
    def _merge_raw_overlay(
        self, handler: SerializerFunctionWrapHandler
    ) -> Dict[str, Any]:
        typed = handler(self)
        if not self._raw:
            return typed
        return deep_merge(self._raw, typed)

    @property
    def has_raw_overlay(self) -> bool:
        return self._raw is not None


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary whose values win

    Returns:
        Merged dictionary (neither input is modified)
    """
    result = dict(base)

    for key, value in override.items():
        if (
            key in result
            and isinstance(result[key], dict)
            and isinstance(value, dict)
        ):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def parse_structured(payload: Union[bytes, str]) -> Any:
    """Parse YAML or JSON text into plain Python data.

    Raises:
        DecodeError: If the payload is not well-formed
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError("Input is not valid UTF-8", cause=e) from e
    try:
        return yaml.safe_load(payload)
    except yaml.YAMLError as e:
        raise DecodeError(f"Input is not well-formed structured data: {e}", cause=e) from e


def decode(model_cls: Type[M], data: Union[bytes, str, Mapping[str, Any]]) -> M:
    """
    Decode user input into a typed view paired with its raw overlay.

    Args:
        model_cls: OverlayModel subclass describing the typed view
        data: YAML/JSON bytes or text, or an already parsed mapping

    Returns:
        Typed model instance with its raw overlay attached

    Raises:
        DecodeError: If the input is malformed or a modeled field has an
            incompatible value type
    """
    if isinstance(data, (bytes, str)):
        data = parse_structured(data)

    if not isinstance(data, Mapping):
        raise DecodeError(
            f"Expected a mapping, got {type(data).__name__}",
            model=model_cls.__name__,
        )

    raw = copy.deepcopy(dict(data))
    try:
        model = model_cls.model_validate(raw)
    except PydanticValidationError as e:
        raise DecodeError(
            f"Input does not match {model_cls.__name__} schema: {e}",
            model=model_cls.__name__,
            cause=e,
        ) from e

    _attach_raw(model, raw)
    return model


def _attach_raw(model: OverlayModel, raw: RawOverlay) -> None:
    if model._raw is not None:
        raise RuntimeError(
            f"{type(model).__name__} is already paired with a raw overlay"
        )
    model._raw = raw

    for name, field in type(model).model_fields.items():
        key = field.alias if field.alias and field.alias in raw else name
        if key not in raw:
            continue
        _attach_value(getattr(model, name), raw[key])


def _attach_value(value: Any, raw_value: Any) -> None:
    if isinstance(value, OverlayModel) and isinstance(raw_value, dict):
        _attach_raw(value, raw_value)
    elif isinstance(value, list) and isinstance(raw_value, list):
        for item, raw_item in zip(value, raw_value):
            _attach_value(item, raw_item)


def raw_overlay(model: OverlayModel) -> RawOverlay:
    """Return a copy of the raw overlay paired with ``model``."""
    return copy.deepcopy(model._raw or {})


def encode(model: OverlayModel) -> Dict[str, Any]:
    """
    Encode a typed view merged over its raw overlay.

    Fields present in the typed view overwrite the raw overlay; every other
    raw field passes through verbatim.

    Args:
        model: Decoded (and possibly mutated) typed view

    Returns:
        Plain dictionary ready for serialization
    """
    return model.model_dump(mode="python", by_alias=True, exclude_unset=True)


def dump_structured(data: Any, fmt: str = "json") -> bytes:
    """Serialize plain data deterministically as JSON or YAML bytes."""
    if fmt == "json":
        return json.dumps(data, indent=2, default=str).encode("utf-8") + b"\n"
    if fmt == "yaml":
        return yaml.safe_dump(
            data, sort_keys=False, default_flow_style=False
        ).encode("utf-8")
    raise ValueError(f"Unsupported output format: {fmt}")


def encode_bytes(model: OverlayModel, fmt: str = "json") -> bytes:
    """Encode ``model`` and serialize it to bytes."""
    return dump_structured(encode(model), fmt)
