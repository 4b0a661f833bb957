"""Merkle inclusion-proof verification.

Used to check that a block hash is committed under a root taken from a
counterparty chain's light-client state. Hashes are 32-byte SHA-256 digests; a
pair is serialised as the two fixed-width digests back to back, and a leaf item is
serialised with a 4-byte little-endian length prefix (Borsh ``Vec<u8>``). The prefix
alone does not separate leaves from inner nodes: a 60-byte item serialises to 64
bytes, the size of a pair, so ``hash_item`` and ``combine_hash`` can be fed identical
preimages. Callers that need that separation pass their own ``serialize``.

Verification is total: a forged or malformed path yields ``False``.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from indexledger.domain.errors import MalformedProofError

log = logging.getLogger(__name__)

HASH_SIZE: Final[int] = 32

type MerkleHash = bytes
type Serializer = Callable[[bytes], bytes]


class Direction(StrEnum):
    """Side on which the sibling sits relative to the running hash."""

    LEFT = "Left"
    RIGHT = "Right"


@dataclass(frozen=True, slots=True)
class MerklePathItem:
    hash: MerkleHash
    direction: Direction


type MerklePath = Sequence[MerklePathItem]


def _require_hash(value: object, *, what: str) -> MerkleHash:
    if not isinstance(value, bytes) or len(value) != HASH_SIZE:
        raise MalformedProofError(f"{what} must be {HASH_SIZE} bytes")
    return value


def serialize_item(item: bytes) -> bytes:
    """Canonical, length-prefixed encoding of a leaf value."""

    return len(item).to_bytes(4, "little") + item


def hash_item(item: bytes, *, serialize: Serializer = serialize_item) -> MerkleHash:
    return hashlib.sha256(serialize(item)).digest()


def combine_hash(left: MerkleHash, right: MerkleHash) -> MerkleHash:
    """Compress two child hashes into their parent."""

    _require_hash(left, what="Left hash")
    _require_hash(right, what="Right hash")
    return hashlib.sha256(left + right).digest()


def compute_root_from_path(path: MerklePath, leaf_hash: MerkleHash) -> MerkleHash:
    try:
        steps = tuple(path)
    except TypeError as exc:
        raise MalformedProofError("Merkle path must be a sequence of path items") from exc
    result = leaf_hash
    for index, item in enumerate(steps):
        if not isinstance(item, MerklePathItem):
            raise MalformedProofError(
                f"Path item {index} is {type(item).__name__}, not MerklePathItem"
            )
        match item.direction:
            case Direction.LEFT:
                result = combine_hash(item.hash, result)
            case Direction.RIGHT:
                result = combine_hash(result, item.hash)
            case _:
                raise MalformedProofError(f"Unknown path direction: {item.direction!r}")
    return result


def verify_hash(root: MerkleHash, path: MerklePath, leaf_hash: MerkleHash) -> bool:
    try:
        computed = compute_root_from_path(path, leaf_hash)
    except MalformedProofError as exc:
        log.debug("Rejecting malformed inclusion proof: %s", exc)
        return False
    return computed == root


def verify_path(
    root: MerkleHash,
    path: MerklePath,
    item: bytes,
    *,
    serialize: Serializer = serialize_item,
) -> bool:
    """Check that ``item`` is included under ``root`` via ``path``."""

    return verify_hash(root, path, hash_item(item, serialize=serialize))


def parse_merkle_path(items: Iterable[Mapping[str, object]]) -> tuple[MerklePathItem, ...]:
    """Build a path from JSON-style ``{"hash": <hex>, "direction": "Left"}`` entries."""

    parsed: list[MerklePathItem] = []
    for index, raw in enumerate(items):
        raw_hash = raw.get("hash")
        raw_direction = raw.get("direction")
        if not isinstance(raw_hash, str) or not isinstance(raw_direction, str):
            raise MalformedProofError(f"Path item {index} needs string 'hash' and 'direction'")
        try:
            sibling = bytes.fromhex(raw_hash.removeprefix("0x"))
        except ValueError as exc:
            raise MalformedProofError(f"Path item {index} hash is not hex") from exc
        try:
            direction = Direction(raw_direction.capitalize())
        except ValueError as exc:
            raise MalformedProofError(
                f"Path item {index} has unknown direction {raw_direction!r}"
            ) from exc
        sibling = _require_hash(sibling, what=f"Path item {index}")
        parsed.append(MerklePathItem(hash=sibling, direction=direction))
    return tuple(parsed)


__all__ = [
    "HASH_SIZE",
    "Direction",
    "MerkleHash",
    "MerklePath",
    "MerklePathItem",
    "combine_hash",
    "compute_root_from_path",
    "hash_item",
    "parse_merkle_path",
    "serialize_item",
    "verify_hash",
    "verify_path",
]
