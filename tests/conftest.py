from __future__ import annotations

import pytest

from dematel_core.record import make_answer
from dematel_core.types import Criterion, Dimension, SurveySnapshot


def build_synthetic_structure(
    *,
    dimensions: int = 3,
    criteria_per_dimension: int | list[int] = 2,
) -> tuple[Dimension, ...]:
    """Create a deterministic structure: dimensions A, B, C… with criteria A1, A2…"""

    counts = (
        list(criteria_per_dimension)
        if isinstance(criteria_per_dimension, list)
        else [criteria_per_dimension] * dimensions
    )
    out: list[Dimension] = []
    for idx in range(dimensions):
        code = chr(ord("A") + idx)
        criteria = tuple(
            Criterion(
                code=f"{code}{n}",
                name=f"Criterion {code}{n}",
                description=f"Description of {code}{n}",
                examples=(f"example {code}{n}",) if n % 2 else (),
            )
            for n in range(1, counts[idx] + 1)
        )
        out.append(Dimension(code=code, name=f"Dimension {code}", description=f"About {code}", criteria=criteria))
    return tuple(out)


def build_raw_structure(dimensions: tuple[Dimension, ...] | None = None) -> dict:
    """Same structure in the on-disk (Chinese key) format."""

    dims = dimensions or build_synthetic_structure()
    return {
        "說明": {"標題": "DEMATEL", "內容": ["intro"]},
        "基本資料": [{"欄位": "name", "標籤": "姓名"}],
        "架構": [
            {
                "構面": d.name,
                "代碼": d.code,
                "說明": d.description,
                "準則": [
                    {"編號": c.code, "名稱": c.name, "說明": c.description, "舉例": list(c.examples)}
                    for c in d.criteria
                ],
            }
            for d in dims
        ],
    }


def build_snapshot() -> SurveySnapshot:
    snap = SurveySnapshot(
        survey_id="5f1c2a9e-7d3b-4c11-9a0e-2b6f4d8e1c07",
        basic_info={"name": "Lin", "org": "Research Office", "years": "6-10"},
        config_digest="9b74c9897bac770ffc029102a200c5de" * 2,
        start_time=1723530000000,
        end_time=1723531800000,
        total_questions=18,
    )
    snap.answers["dimension:A|B"] = make_answer("to", 3, timestamp=1723530100000)
    snap.answers["dimension:A|C"] = make_answer("none", timestamp=1723530110000)
    snap.answers["dimension:B|C"] = make_answer("bi", 2, 4, timestamp=1723530120000)
    snap.answers["criteria:A1|A2"] = make_answer("from", 1, timestamp=1723530130000)
    snap.answers["criteria:A1|B1"] = make_answer("bi", 4, 4, timestamp=1723530140000)
    return snap


@pytest.fixture
def synthetic_structure() -> tuple[Dimension, ...]:
    return build_synthetic_structure()


@pytest.fixture
def snapshot() -> SurveySnapshot:
    return build_snapshot()
