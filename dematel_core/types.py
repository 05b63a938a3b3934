from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Literal
Category = Literal["dimension","criteria"]
Relation = Literal["to","from","bi","none","skipped"]
RELATIONS: Tuple[str, ...] = ("to", "from", "bi", "none")
@dataclass(frozen=True)
class Criterion:
    code: str; name: str
    description: str = ""
    examples: Tuple[str, ...] = ()
@dataclass(frozen=True)
class Dimension:
    code: str; name: str
    description: str = ""
    criteria: Tuple[Criterion, ...] = ()
@dataclass(frozen=True)
class Item:
    id: str; name: str
    description: str = ""
    examples: Tuple[str, ...] = ()
    dimension_id: Optional[str] = None
    dimension_name: Optional[str] = None
@dataclass(frozen=True)
class PairwiseQuestion:
    category: Category; key: str; item_a: Item; item_b: Item
@dataclass
class Answer:
    relation: Relation
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    timestamp: Optional[int] = None
@dataclass(frozen=True)
class LabelCluster:
    labels: Tuple[str, ...]
    def __len__(self) -> int: return len(self.labels)
    def __contains__(self, label: object) -> bool: return label in self.labels
@dataclass
class InfluenceMatrix:
    labels: List[str]
    values: List[List[float]]
    group_label: str = ""
@dataclass(frozen=True)
class TransportSegment:
    group_id: str; index: int; total: int; part: str
@dataclass
class SurveySnapshot:
    survey_id: str
    basic_info: Dict[str, object] = field(default_factory=dict)
    answers: Dict[str, Answer] = field(default_factory=dict)
    config_digest: str = ""
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    total_questions: int = 0
