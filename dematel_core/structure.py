"""Load the survey structure file (``dematel-structure.json``).

The file is authored in Chinese (``架構`` / ``構面`` / ``準則`` …); English
aliases are accepted so that fixtures and API callers can stay ASCII.  The raw
text is hashed with SHA-256 to produce the configuration digest that travels
with every answer record.
"""
from __future__ import annotations

import hashlib
import importlib.resources as ir
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from .config import load_config
from .errors import ConfigurationError
from .types import Criterion, Dimension, SurveySnapshot

log = logging.getLogger(__name__)

_INTRO_KEYS = ("說明", "intro")
_BASIC_KEYS = ("基本資料", "basicInfo")
_DIMENSIONS_KEYS = ("架構", "dimensions")

_DIM_CODE = ("代碼", "code")
_DIM_NAME = ("構面", "name")
_DIM_CRITERIA = ("準則", "criteria")
_CRIT_CODE = ("編號", "code")
_CRIT_NAME = ("名稱", "name")
_DESCRIPTION = ("說明", "description")
_EXAMPLES = ("舉例", "examples")


@dataclass(frozen=True)
class SurveyStructure:
    intro: Any
    basic_info: Any
    dimensions: Tuple[Dimension, ...]
    digest: str = ""


def _pick(raw: Mapping[str, Any], keys: Sequence[str], default: Any = None) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def config_digest(text: str) -> str:
    """SHA-256 hex digest of the raw structure text."""

    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def verify_config_digest(record: SurveySnapshot | Mapping[str, Any], structure: SurveyStructure) -> None:
    """Refuse a record whose ``configDigest`` is not the current structure's.

    Answers collected against an older structure file would be exported under
    the wrong question keys, so the respondent has to start over.
    """

    if isinstance(record, SurveySnapshot):
        stored = record.config_digest
    else:
        stored = record.get("configDigest")
    if stored != structure.digest:
        log.warning("structure changed: record digest %s, current %s", stored, structure.digest)
        raise ConfigurationError(
            f"structure changed since the survey started (record {stored!r}, current {structure.digest!r})"
        )


def _parse_criterion(raw: Any, dim_code: str) -> Criterion:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"criterion under dimension {dim_code} must be an object")
    code = _pick(raw, _CRIT_CODE)
    if code is None or not str(code).strip():
        raise ConfigurationError(f"criterion under dimension {dim_code} has no code")
    examples = _pick(raw, _EXAMPLES) or []
    if isinstance(examples, str):
        examples = [examples]
    return Criterion(
        code=str(code).strip(),
        name=_text(_pick(raw, _CRIT_NAME)),
        description=_text(_pick(raw, _DESCRIPTION)),
        examples=tuple(str(x) for x in examples),
    )


def _parse_dimension(raw: Any, position: int) -> Dimension:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"dimension #{position + 1} must be an object")
    code = _pick(raw, _DIM_CODE)
    if code is None or not str(code).strip():
        raise ConfigurationError(f"dimension #{position + 1} has no code")
    code = str(code).strip()
    criteria_raw = _pick(raw, _DIM_CRITERIA) or []
    if not isinstance(criteria_raw, list):
        raise ConfigurationError(f"criteria of dimension {code} must be a list")
    return Dimension(
        code=code,
        name=_text(_pick(raw, _DIM_NAME)),
        description=_text(_pick(raw, _DESCRIPTION)),
        criteria=tuple(_parse_criterion(c, code) for c in criteria_raw),
    )


def parse_structure(raw: Any, digest: str = "") -> SurveyStructure:
    """Validate the decoded structure object and build the typed records."""

    if not raw:
        raise ConfigurationError("structure is empty")
    if not isinstance(raw, Mapping):
        raise ConfigurationError("structure must be a JSON object")
    intro = _pick(raw, _INTRO_KEYS)
    if not intro:
        raise ConfigurationError("missing field: 說明 (intro)")
    basic = _pick(raw, _BASIC_KEYS)
    if not basic:
        raise ConfigurationError("missing field: 基本資料 (basicInfo)")
    dims_raw = _pick(raw, _DIMENSIONS_KEYS)
    if not isinstance(dims_raw, list):
        raise ConfigurationError("missing field or wrong type: 架構 (dimensions)")

    dimensions = tuple(_parse_dimension(d, i) for i, d in enumerate(dims_raw))

    # counts and code uniqueness are checked where the questions are built
    from .questions import validate_dimensions

    validate_dimensions(dimensions)
    return SurveyStructure(intro=intro, basic_info=basic, dimensions=dimensions, digest=digest)


def loads_structure(text: str) -> SurveyStructure:
    try:
        raw = json.loads(text)
    except ValueError as exc:
        raise ConfigurationError(f"structure is not valid JSON: {exc}") from exc
    return parse_structure(raw, digest=config_digest(text))


def load_structure(path: Optional[str | Path] = None) -> SurveyStructure:
    """Read and validate a structure file.

    With no ``path`` the configured ``STRUCTURE_PATH`` is used when that file
    exists, otherwise the bundled sample.
    """

    if path is None:
        configured = Path(load_config()["STRUCTURE_PATH"])
        if configured.is_file():
            path = configured
    if path is None:
        text = ir.files(__package__).joinpath("data/dematel-structure.json").read_text(encoding="utf-8")
    else:
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"cannot read structure file {p}: {exc}") from exc
    structure = loads_structure(text)
    log.info(
        "structure loaded: %d dimensions, %d criteria, digest=%s",
        len(structure.dimensions),
        sum(len(d.criteria) for d in structure.dimensions),
        structure.digest[:12],
    )
    return structure


def all_criteria(dimensions: Sequence[Dimension]) -> List[Tuple[Dimension, Criterion]]:
    return [(dim, crit) for dim in dimensions for crit in dim.criteria]
