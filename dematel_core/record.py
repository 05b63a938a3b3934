"""Answer capture and the canonical answer record.

The canonical record is what leaves the respondent's device: it is posted to
the reporting backend, saved as the downloadable snapshot, and packed into QR
segments.  Its ``answers`` use the backend's ``"left|right" -> "a|b"`` form.
"""
from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, Mapping, Optional

from .questions import strip_category
from .types import RELATIONS, Answer, SurveySnapshot

__all__ = [
    "make_answer",
    "record_answer",
    "new_snapshot",
    "canonical_answers",
    "canonical_record",
    "snapshot_text",
    "snapshot_filename",
]


def _now_ms() -> int:
    return int(time.time() * 1000)


def make_answer(relation: str, score: Optional[int] = None, score2: Optional[int] = None, timestamp: Optional[int] = None) -> Answer:
    """Build an :class:`Answer` from a relation and the scores picked for it.

    ``to`` keeps ``score`` as A->B, ``from`` stores ``score`` as B->A, ``bi``
    keeps both and ``none`` drops them.
    """

    if relation not in RELATIONS:
        raise ValueError(f"unknown relation: {relation!r}")
    ts = _now_ms() if timestamp is None else timestamp
    if relation == "none":
        return Answer(relation="none", timestamp=ts)
    if relation == "to":
        return Answer(relation="to", score_a=score, timestamp=ts)
    if relation == "from":
        return Answer(relation="from", score_b=score, timestamp=ts)
    return Answer(relation="bi", score_a=score, score_b=score2, timestamp=ts)


def record_answer(snapshot: SurveySnapshot, key: str, relation: str, score: Optional[int] = None, score2: Optional[int] = None) -> Answer:
    ans = make_answer(relation, score, score2)
    snapshot.answers[key] = ans
    return ans


def new_snapshot(config_digest: str = "", total_questions: int = 0, basic_info: Optional[Mapping[str, Any]] = None) -> SurveySnapshot:
    return SurveySnapshot(
        survey_id=str(uuid.uuid4()),
        basic_info=dict(basic_info or {}),
        config_digest=config_digest,
        start_time=_now_ms(),
        total_questions=total_questions,
    )


def _score_text(value: Optional[int]) -> str:
    return "0" if value is None else str(value)


def canonical_answers(answers: Mapping[str, Answer]) -> Dict[str, str]:
    return {strip_category(k): f"{_score_text(a.score_a)}|{_score_text(a.score_b)}" for k, a in answers.items()}


def canonical_record(snapshot: SurveySnapshot) -> Dict[str, Any]:
    return {
        "surveyId": snapshot.survey_id,
        "basicInfo": dict(snapshot.basic_info),
        "answers": canonical_answers(snapshot.answers),
        "configDigest": snapshot.config_digest,
        "startTime": snapshot.start_time,
        "endTime": snapshot.end_time,
        "totalQuestions": snapshot.total_questions,
    }


def snapshot_text(record: SurveySnapshot | Mapping[str, Any]) -> str:
    """Indented, uncompressed JSON for the downloadable archive copy."""

    data = canonical_record(record) if isinstance(record, SurveySnapshot) else dict(record)
    return json.dumps(data, ensure_ascii=False, indent=2)


def snapshot_filename(survey_id: str) -> str:
    return f"dematel-survey-{survey_id}.json"
