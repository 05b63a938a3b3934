from __future__ import annotations

import json

import pytest

from dematel_core.labels import build_clusters
from dematel_core.matrix import build
from dematel_core.record import (
    canonical_record,
    make_answer,
    new_snapshot,
    record_answer,
    snapshot_filename,
    snapshot_text,
)


def test_relation_slots():
    assert (make_answer("to", 3).score_a, make_answer("to", 3).score_b) == (3, None)
    assert (make_answer("from", 2).score_a, make_answer("from", 2).score_b) == (None, 2)
    bi = make_answer("bi", 1, 4)
    assert (bi.score_a, bi.score_b) == (1, 4)
    none = make_answer("none", 3, 3)
    assert (none.score_a, none.score_b) == (None, None)
    assert make_answer("to", 1, timestamp=42).timestamp == 42
    assert isinstance(make_answer("none").timestamp, int)


def test_unknown_relation_rejected():
    with pytest.raises(ValueError):
        make_answer("skipped")


def test_canonical_record_shape(snapshot):
    rec = canonical_record(snapshot)

    assert list(rec) == [
        "surveyId",
        "basicInfo",
        "answers",
        "configDigest",
        "startTime",
        "endTime",
        "totalQuestions",
    ]
    assert rec["answers"] == {
        "A|B": "3|0",
        "A|C": "0|0",
        "B|C": "2|4",
        "A1|A2": "0|1",
        "A1|B1": "4|4",
    }
    assert rec["totalQuestions"] == 18


def test_canonical_answers_feed_the_matrix_path(snapshot):
    answers = canonical_record(snapshot)["answers"]
    clusters = build_clusters(answers)
    assert [c.labels for c in clusters] == [("A", "B", "C"), ("A1", "A2", "B1")]
    dims = build(clusters[0], answers)
    assert dims.values == [[0, 3, 0], [0, 0, 2], [0, 4, 0]]


def test_snapshot_text_is_indented_and_reconstructable(snapshot):
    text = snapshot_text(snapshot)
    assert text.startswith("{\n  \"surveyId\"")
    assert json.loads(text) == canonical_record(snapshot)
    assert snapshot_text(json.loads(text)) == text
    assert snapshot_filename(snapshot.survey_id) == f"dematel-survey-{snapshot.survey_id}.json"


def test_new_snapshot_and_record_answer():
    snap = new_snapshot(config_digest="abc", total_questions=4, basic_info={"name": "Chen"})
    assert len(snap.survey_id) == 36
    assert snap.start_time and snap.end_time is None

    record_answer(snap, "criteria:A1|B1", "bi", 2, 3)
    assert canonical_record(snap)["answers"] == {"A1|B1": "2|3"}
