"""QR transport packing.

``pack`` turns an answer record into a list of segments small enough for one
QR symbol each::

    record -> auto-shorten -> {data, hash, v} -> deflate(9) -> base64 -> segments

``unpack`` is the exact inverse and refuses incomplete segment sets, payloads
whose truncated SHA-256 tag does not match, and unknown envelope versions.
The tag catches accidental corruption only; it is not an authenticity check.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import importlib
import json
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from . import config
from .errors import (
    CompressionUnavailable,
    EncodingError,
    IncompleteTransport,
    IntegrityMismatch,
    MalformedEnvelope,
)
from .record import canonical_record
from .shorten import expand, shorten
from .types import SurveySnapshot, TransportSegment

log = logging.getLogger(__name__)

__all__ = [
    "pack",
    "unpack",
    "split_segments",
    "digest_tag",
    "build_envelope",
    "open_envelope",
    "encode_payload",
    "decode_payload",
    "segment_to_wire",
    "segment_from_wire",
    "segment_to_text",
]

SegmentLike = Union[TransportSegment, Mapping[str, Any], str]


def _compressor():
    name = config.COMPRESSION_MODULE
    try:
        mod = importlib.import_module(name)
    except ImportError as exc:
        raise CompressionUnavailable(f"compression module {name!r} is not available") from exc
    if not callable(getattr(mod, "compress", None)) or not callable(getattr(mod, "decompress", None)):
        raise CompressionUnavailable(f"module {name!r} has no compress/decompress")
    return mod


def _dumps(obj: Any, what: str) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"cannot serialize {what}: {exc}") from exc


def digest_tag(body: Mapping[str, Any]) -> str:
    """First ``DIGEST_HEX_LEN`` hex chars of SHA-256 over ``{vObj, keyMap, valMap}``."""

    ordered = {"vObj": body.get("vObj"), "keyMap": body.get("keyMap"), "valMap": body.get("valMap")}
    text = _dumps(ordered, "envelope data")
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[: config.DIGEST_HEX_LEN]


def build_envelope(record: Any) -> Dict[str, Any]:
    short = shorten(record)
    body = {"vObj": short.substituted, "keyMap": short.key_map, "valMap": short.val_map}
    log.debug(
        "auto-shorten: %d keys, %d values substituted",
        len(short.key_map),
        len(short.val_map),
    )
    if config.DEBUG_TRACE:
        log.debug("keyMap=%s valMap=%s", short.key_map, short.val_map)
    return {"data": body, "hash": digest_tag(body), "v": config.TRANSPORT_VERSION}


def open_envelope(envelope: Any) -> Any:
    """Check version and digest, then reverse the dictionary substitution."""

    if not isinstance(envelope, Mapping):
        raise MalformedEnvelope("envelope must be an object")
    data = envelope.get("data")
    stored = envelope.get("hash")
    if not isinstance(data, Mapping) or not isinstance(stored, str) or "vObj" not in data:
        raise MalformedEnvelope("envelope is missing data/hash")
    key_map = data.get("keyMap") or {}
    val_map = data.get("valMap") or {}
    if not isinstance(key_map, Mapping) or not isinstance(val_map, Mapping):
        raise MalformedEnvelope("keyMap/valMap must be objects")
    if envelope.get("v") != config.TRANSPORT_VERSION:
        raise MalformedEnvelope(f"unsupported envelope version: {envelope.get('v')!r}")
    actual = digest_tag(data)
    if actual != stored:
        raise IntegrityMismatch(f"digest mismatch: stored {stored}, computed {actual}")
    return expand(data["vObj"], dict(key_map), dict(val_map))


def encode_payload(envelope: Mapping[str, Any]) -> str:
    codec = _compressor()
    raw = _dumps(envelope, "envelope").encode("utf-8")
    compressed = codec.compress(raw, config.COMPRESSION_LEVEL)
    payload = base64.b64encode(compressed).decode("ascii")
    log.debug("envelope %d bytes -> compressed %d bytes -> base64 %d chars", len(raw), len(compressed), len(payload))
    return payload


def decode_payload(payload: str) -> Any:
    codec = _compressor()
    codec_errors = tuple(e for e in (getattr(codec, "error", None), ValueError, OSError) if e)
    try:
        compressed = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedEnvelope(f"payload is not valid base64: {exc}") from exc
    try:
        text = codec.decompress(compressed).decode("utf-8")
    except codec_errors as exc:
        raise MalformedEnvelope(f"payload does not decompress: {exc}") from exc
    try:
        return json.loads(text)
    except ValueError as exc:
        raise MalformedEnvelope(f"envelope is not valid JSON: {exc}") from exc


def split_segments(payload: str, budget: int, overhead: Optional[int] = None) -> List[str]:
    """Split ``payload`` into ``ceil(len / (budget - overhead))`` balanced parts.

    Part lengths differ by at most one character and none exceeds the
    effective budget.
    """

    overhead = config.SEGMENT_OVERHEAD if overhead is None else overhead
    effective = budget - overhead
    if effective <= 0:
        raise EncodingError(f"segment budget {budget} does not exceed the per-segment overhead {overhead}")
    length = len(payload)
    count = max(1, math.ceil(length / effective))
    base, extra = divmod(length, count)
    parts: List[str] = []
    pos = 0
    for n in range(count):
        size = base + (1 if n < extra else 0)
        parts.append(payload[pos : pos + size])
        pos += size
    return parts


def pack(
    record: SurveySnapshot | Mapping[str, Any],
    budget: Optional[int] = None,
    *,
    group_id: Optional[str] = None,
) -> List[TransportSegment]:
    """Pack a snapshot (canonicalized first) or an already canonical mapping."""

    budget = config.SEGMENT_BUDGET if budget is None else int(budget)
    data = canonical_record(record) if isinstance(record, SurveySnapshot) else record
    if not isinstance(data, Mapping):
        raise EncodingError("answer record must be a mapping")
    _compressor()

    envelope = build_envelope(data)
    payload = encode_payload(envelope)
    parts = split_segments(payload, budget)
    gid = group_id or envelope["hash"]
    log.info("packed record into %d segment(s), group=%s, payload=%d chars", len(parts), gid, len(payload))
    return [TransportSegment(group_id=gid, index=i, total=len(parts), part=p) for i, p in enumerate(parts, start=1)]


def segment_to_wire(seg: TransportSegment) -> Dict[str, Any]:
    return {"g": seg.group_id, "i": seg.index, "total": seg.total, "part": seg.part}


def segment_to_text(seg: TransportSegment) -> str:
    return _dumps(segment_to_wire(seg), "segment")


def segment_from_wire(raw: SegmentLike) -> TransportSegment:
    if isinstance(raw, TransportSegment):
        return raw
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise MalformedEnvelope(f"segment is not valid JSON: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise MalformedEnvelope("segment must be an object")
    try:
        return TransportSegment(
            group_id=str(raw["g"]),
            index=int(raw["i"]),
            total=int(raw["total"]),
            part=str(raw["part"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedEnvelope(f"segment is missing g/i/total/part: {exc}") from exc


def _assemble(segments: List[TransportSegment]) -> str:
    if not segments:
        raise IncompleteTransport("no segments")
    groups = {s.group_id for s in segments}
    if len(groups) > 1:
        raise IncompleteTransport(f"segments from {len(groups)} groups are mixed: {sorted(groups)}")
    totals = {s.total for s in segments}
    if len(totals) > 1:
        raise IncompleteTransport(f"segments disagree on total: {sorted(totals)}")
    total = totals.pop()
    if total < 1:
        raise IncompleteTransport(f"invalid segment total {total}")

    by_index: Dict[int, TransportSegment] = {}
    for seg in segments:
        if not 1 <= seg.index <= total:
            raise IncompleteTransport(f"segment index {seg.index} outside 1..{total}")
        prev = by_index.get(seg.index)
        if prev is not None and prev.part != seg.part:
            raise IncompleteTransport(f"conflicting copies of segment {seg.index}")
        by_index[seg.index] = seg
    missing = [i for i in range(1, total + 1) if i not in by_index]
    if missing:
        raise IncompleteTransport(f"missing segment(s) {missing} of {total}")
    return "".join(by_index[i].part for i in range(1, total + 1))


def unpack(segments: Iterable[SegmentLike]) -> Any:
    """Reassemble, verify and expand; returns the canonical record."""

    if isinstance(segments, (str, bytes, Mapping, TransportSegment)):
        raise IncompleteTransport(f"expected a list of segments, got a single {type(segments).__name__}")
    segs = [segment_from_wire(s) for s in segments]
    payload = _assemble(segs)
    envelope = decode_payload(payload)
    record = open_envelope(envelope)
    log.info("unpacked %d segment(s), group=%s", len(segs), segs[0].group_id)
    return record
