"""
Cache Payload Serializers

Turns cache entries into byte blobs and back.

Blob layout:
    [marker:1 byte][payload]
    marker 0x00 -> payload is the raw encoded value
    marker 0x01 -> payload is the zlib-compressed encoded value

The marker is always written, so a reader never has to guess whether a blob
is compressed. Compression is applied only when requested and the encoded
payload reaches the threshold.

Two formats:
- JsonCacheSerializer (orjson): default, human-inspectable in redis-cli
- MessagePackCacheSerializer (msgpack): smaller and faster for large entries

Both convert values to JSON-compatible primitives first (pydantic models are
dumped in JSON mode) and, on the way back, validate the payload into the
requested type with a pydantic TypeAdapter in strict JSON mode: a cached "42"
is not an int, so a value of another type reads as a mismatch instead of
being coerced.
"""

import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import msgpack
import orjson
from pydantic import TypeAdapter
from pydantic_core import PydanticSerializationError, to_jsonable_python

from pipeline_cache.core.config.constants import (
    COMPRESSION_LEVEL,
    COMPRESSION_MARKER,
    NO_COMPRESSION_MARKER,
)
from pipeline_cache.core.exceptions.cache import CacheSerializationError

# Failures a corrupted or mismatched payload can raise while decoding.
# pydantic.ValidationError and orjson.JSONDecodeError are ValueErrors.
_DECODE_ERRORS = (ValueError, TypeError, zlib.error, msgpack.exceptions.UnpackException)
_ENCODE_ERRORS = (TypeError, ValueError, PydanticSerializationError)


@dataclass(frozen=True)
class SerializationResult:
    """
    Serialized blob plus size information for telemetry.

    Attributes:
        data: Stored bytes, marker included
        original_size: Encoded size before compression
        final_size: Stored size excluding the marker byte
        is_compressed: Whether the payload was compressed
    """
    data: bytes
    original_size: int
    final_size: int
    is_compressed: bool

    @property
    def compression_ratio(self) -> float:
        """original_size / final_size when compressed, 1.0 otherwise."""
        if self.is_compressed and self.final_size > 0:
            return self.original_size / self.final_size
        return 1.0


@lru_cache(maxsize=256)
def _type_adapter(target_type: Any) -> TypeAdapter:
    return TypeAdapter(target_type)


class CacheSerializer(ABC):
    """
    Base class handling markers, compression and typed decoding.

    Subclasses only provide the wire format through _encode/_decode.
    """

    name: str = "base"

    @abstractmethod
    def _encode(self, primitive: Any) -> bytes:
        """Encode JSON-compatible primitives to bytes."""

    @abstractmethod
    def _decode(self, payload: bytes) -> Any:
        """Decode bytes back into primitives."""

    def _validate(self, payload: bytes, adapter: TypeAdapter) -> Any:
        """Validate an encoded payload strictly, with JSON input rules."""
        return adapter.validate_json(orjson.dumps(self._decode(payload)), strict=True)

    def serialize(
        self,
        value: Any,
        use_compression: bool = False,
        compression_threshold: int = 1024,
    ) -> SerializationResult:
        """
        Serialize a value into a marked blob.

        Raises:
            CacheSerializationError: If the value cannot be encoded
        """
        try:
            payload = self._encode(to_jsonable_python(value))
        except _ENCODE_ERRORS as e:
            raise CacheSerializationError.from_exception(
                e,
                message=f"Failed to serialize {type(value).__name__} with {self.name}",
                serializer=self.name,
            ) from e

        original_size = len(payload)

        if use_compression and original_size >= compression_threshold:
            compressed = zlib.compress(payload, COMPRESSION_LEVEL)
            return SerializationResult(
                data=bytes([COMPRESSION_MARKER]) + compressed,
                original_size=original_size,
                final_size=len(compressed),
                is_compressed=True,
            )

        return SerializationResult(
            data=bytes([NO_COMPRESSION_MARKER]) + payload,
            original_size=original_size,
            final_size=original_size,
            is_compressed=False,
        )

    def deserialize(self, data: bytes | None, target_type: Any = None) -> Any:
        """
        Deserialize a marked blob, validating into target_type when given.

        Raises:
            CacheSerializationError: On empty input, unknown marker, corrupt
                payload or a payload that does not fit target_type
        """
        if not data:
            raise CacheSerializationError(
                "Cannot deserialize an empty payload",
                details={"serializer": self.name},
            )

        marker, payload = data[0], data[1:]
        if marker not in (COMPRESSION_MARKER, NO_COMPRESSION_MARKER):
            raise CacheSerializationError(
                f"Unknown compression marker 0x{marker:02x}",
                details={"serializer": self.name, "marker": marker},
            )

        try:
            if marker == COMPRESSION_MARKER:
                payload = zlib.decompress(payload)
            if target_type is None:
                return self._decode(payload)
            return self._validate(payload, _type_adapter(target_type))
        except _DECODE_ERRORS as e:
            raise CacheSerializationError.from_exception(
                e,
                message=f"Failed to deserialize payload with {self.name}",
                serializer=self.name,
                compressed=marker == COMPRESSION_MARKER,
            ) from e


class JsonCacheSerializer(CacheSerializer):
    """orjson-based serializer (default)."""

    name = "json"

    def _encode(self, primitive: Any) -> bytes:
        return orjson.dumps(primitive)

    def _decode(self, payload: bytes) -> Any:
        return orjson.loads(payload)

    def _validate(self, payload: bytes, adapter: TypeAdapter) -> Any:
        return adapter.validate_json(payload, strict=True)


class MessagePackCacheSerializer(CacheSerializer):
    """msgpack-based serializer for compact binary payloads."""

    name = "msgpack"

    def _encode(self, primitive: Any) -> bytes:
        return msgpack.packb(primitive, use_bin_type=True)

    def _decode(self, payload: bytes) -> Any:
        return msgpack.unpackb(payload, raw=False)


_SERIALIZERS: dict[str, type[CacheSerializer]] = {
    JsonCacheSerializer.name: JsonCacheSerializer,
    MessagePackCacheSerializer.name: MessagePackCacheSerializer,
}


def create_serializer(name: str) -> CacheSerializer:
    """
    Build the serializer selected by CACHE_SERIALIZER.

    Raises:
        ValueError: If name is not a known serializer
    """
    try:
        return _SERIALIZERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown cache serializer '{name}'. Choose one of {sorted(_SERIALIZERS)}"
        ) from None
