"""Dictionary substitution ("auto-shorten") for JSON-like trees.

Repeated mapping keys and repeated string values are swapped for short
tokens when the swap pays for its own mapping entry.  Key tokens are single
letters, value tokens are ``#0``, ``#1`` … so the two alphabets never overlap.

Literal data that already equals a chosen token (a key ``"a"`` or a value
``"#3"``) makes decoding ambiguous.  No escaping is applied.
"""
from __future__ import annotations

import itertools
import string
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from . import config

__all__ = ["ShortenResult", "shorten", "expand"]

KEY_ALPHABET = string.ascii_lowercase + string.ascii_uppercase
KEY_TOKEN_LEN = 1
VALUE_TOKEN_LEN = 2


@dataclass
class ShortenResult:
    substituted: Any
    key_map: Dict[str, str] = field(default_factory=dict)
    val_map: Dict[str, str] = field(default_factory=dict)


def _key_tokens() -> Iterator[str]:
    return iter(KEY_ALPHABET)


def _value_tokens() -> Iterator[str]:
    return (f"#{n}" for n in itertools.count())


def _walk(node: Any, key_stat: Dict[str, int], val_stat: Dict[str, int]) -> None:
    if isinstance(node, dict):
        for k, v in node.items():
            if isinstance(k, str):
                key_stat[k] = key_stat.get(k, 0) + 1
            _walk(v, key_stat, val_stat)
    elif isinstance(node, (list, tuple)):
        for v in node:
            _walk(v, key_stat, val_stat)
    elif isinstance(node, str):
        val_stat[node] = val_stat.get(node, 0) + 1


def _pick(stat: Dict[str, int], tokens: Iterator[str], tok_len: int, min_len: int, min_gain: int) -> Dict[str, str]:
    chosen: Dict[str, str] = {}
    for text, count in stat.items():
        if len(text) < min_len or count < 2:
            continue
        gain = (len(text) - tok_len) * count - (len(text) + tok_len)
        if gain < min_gain:
            continue
        token: Optional[str] = next(tokens, None)
        if token is None:
            break
        chosen[token] = text
    return chosen


def _rewrite(node: Any, keys: Dict[str, str], values: Dict[str, str]) -> Any:
    if isinstance(node, dict):
        return {keys.get(k, k) if isinstance(k, str) else k: _rewrite(v, keys, values) for k, v in node.items()}
    if isinstance(node, (list, tuple)):
        return [_rewrite(v, keys, values) for v in node]
    if isinstance(node, str):
        return values.get(node, node)
    return node


def shorten(tree: Any, min_len: int = config.SHORTEN_MIN_LEN, min_gain: int = config.SHORTEN_MIN_GAIN) -> ShortenResult:
    """Scan, select and rewrite.  Maps returned are token -> original."""

    key_stat: Dict[str, int] = {}
    val_stat: Dict[str, int] = {}
    _walk(tree, key_stat, val_stat)

    key_map = _pick(key_stat, _key_tokens(), KEY_TOKEN_LEN, min_len, min_gain)
    val_map = _pick(val_stat, _value_tokens(), VALUE_TOKEN_LEN, min_len, min_gain)

    rev_key = {orig: tok for tok, orig in key_map.items()}
    rev_val = {orig: tok for tok, orig in val_map.items()}
    return ShortenResult(substituted=_rewrite(tree, rev_key, rev_val), key_map=key_map, val_map=val_map)


def expand(substituted: Any, key_map: Dict[str, str], val_map: Dict[str, str]) -> Any:
    """Inverse of :func:`shorten` given its token -> original tables."""

    return _rewrite(substituted, key_map, val_map)
