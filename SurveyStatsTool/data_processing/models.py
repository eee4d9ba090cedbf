"""
Core data models and structures for survey response analytics.

This module defines the canonical shapes the analytics pipeline works on:
survey schemas (questions and their options), normalized responses, and the
derived statistics containers handed to presentation and export layers.
Everything downstream of normalization operates on these types only.
"""

import re
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple, Any, Pattern

import pandas as pd


class QuestionType(Enum):
    """Enumeration of the question types the survey builder produces."""
    TEXT = "text"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    SCALE = "scale"


class DateRangePreset(Enum):
    """Named date windows offered by the results view."""
    LAST_7_DAYS = "7d"
    LAST_MONTH = "1m"
    LAST_6_MONTHS = "6m"
    LAST_YEAR = "1y"
    ALL_TIME = "all"

    @property
    def label(self) -> str:
        return _PRESET_LABELS[self]


_PRESET_LABELS = {
    DateRangePreset.LAST_7_DAYS: "Last 7 days",
    DateRangePreset.LAST_MONTH: "Last month",
    DateRangePreset.LAST_6_MONTHS: "Last 6 months",
    DateRangePreset.LAST_YEAR: "Last year",
    DateRangePreset.ALL_TIME: "All time",
}


class DropoffSeverity(Enum):
    """Banding of a question's dropoff rate."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_rate(cls, rate: int) -> 'DropoffSeverity':
        """Classify a dropoff percentage."""
        if rate > 30:
            return cls.HIGH
        elif rate > 15:
            return cls.MEDIUM
        else:
            return cls.LOW


class ExportLayout(Enum):
    """Row shapes supported by the tabular exporter."""
    WIDE = "wide"
    LONG = "long"


def as_text(value: Any) -> str:
    """
    Render a scalar the way ids, option values and answers are compared.

    Integral floats lose their fractional part so that ``1`` and ``1.0``
    compare equal, booleans render lowercase and ``None`` renders empty.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_id(value: Any) -> Optional[str]:
    """String-normalize a question id; ``None`` stays ``None``."""
    if value is None:
        return None
    return as_text(value)


def ids_match(left: Any, right: Any) -> bool:
    """Compare two question ids by their string-normalized form."""
    left_id = normalize_id(left)
    return left_id is not None and left_id == normalize_id(right)


@dataclass(frozen=True)
class OptionRef:
    """Canonical ``{label, value}`` form of a question option."""
    label: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {'label': self.label, 'value': self.value}


@dataclass(frozen=True)
class Question:
    """A survey question with its options already normalized."""
    id: str
    order: int = 0
    text: str = ""
    type: str = ""
    required: bool = False
    options: Tuple[OptionRef, ...] = ()

    @property
    def question_type(self) -> Optional[QuestionType]:
        """The known question type, or None for free-form type strings."""
        try:
            return QuestionType(self.type)
        except ValueError:
            return None


@dataclass(frozen=True)
class Survey:
    """A survey schema: id, title and ordered question list."""
    id: str
    title: str = ""
    questions: Tuple[Question, ...] = ()
    description: str = ""

    def get_question(self, question_id: Any) -> Optional[Question]:
        """Retrieve a question by (string-normalized) id."""
        for question in self.questions:
            if ids_match(question.id, question_id):
                return question
        return None


@dataclass(frozen=True)
class AnswerPair:
    """A single answer: question id plus scalar, tuple (multi-select) or None."""
    question_id: Optional[str]
    value: Any = None

    @property
    def values(self) -> Tuple[Any, ...]:
        """The answer value coerced to a tuple; scalars are wrapped."""
        if self.value is None:
            return ()
        if isinstance(self.value, (list, tuple)):
            return tuple(self.value)
        return (self.value,)

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {'questionId': self.question_id, 'value': value}


@dataclass(frozen=True)
class NormalizedResponse:
    """One submitted response in canonical form."""
    answers: Tuple[AnswerPair, ...] = ()
    created_at: Any = None

    def answer_for(self, question_id: Any) -> Optional[AnswerPair]:
        """First answer pair addressed to ``question_id``, if any."""
        for answer in self.answers:
            if ids_match(answer.question_id, question_id):
                return answer
        return None

    def to_dict(self) -> Dict[str, Any]:
        created_at = self.created_at
        if isinstance(created_at, pd.Timestamp):
            created_at = created_at.isoformat()
        return {
            'answers': [answer.to_dict() for answer in self.answers],
            'createdAt': created_at,
        }


@dataclass(frozen=True)
class OptionStat:
    """Count and percentage for one canonical option."""
    label: str
    count: int
    percent: int

    def to_dict(self) -> Dict[str, Any]:
        return {'label': self.label, 'count': self.count, 'percent': self.percent}


@dataclass(frozen=True)
class Distribution:
    """Per-option counts in canonical option order."""
    labels: Tuple[str, ...] = ()
    counts: Tuple[int, ...] = ()
    unmatched: Dict[str, int] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return len(self.labels) == 0

    @property
    def total(self) -> int:
        """Number of option selections, excluding unmatched values."""
        return int(sum(self.counts))

    def to_dict(self) -> Dict[str, List]:
        return {'labels': list(self.labels), 'counts': list(self.counts)}


@dataclass(frozen=True)
class QuestionStats:
    """Derived statistics for one non-identity question."""
    id: str
    number: int
    text: str
    type: str
    responded_count: int
    dropoff_rate: int
    options: Tuple[OptionStat, ...] = ()
    text_answers: Tuple[str, ...] = ()
    is_multiple: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'number': self.number,
            'text': self.text,
            'type': self.type,
            'respondedCount': self.responded_count,
            'dropoffRate': self.dropoff_rate,
            'options': [option.to_dict() for option in self.options],
            'textAnswers': list(self.text_answers),
            'isMultiple': self.is_multiple,
        }


@dataclass(frozen=True)
class SurveyStats:
    """
    Aggregate statistics for a survey over a (filtered) response set.

    ``survey_id``, ``title`` and ``raw_responses`` are only populated when
    the stats are retained for export.
    """
    total_responses: int
    completion_rate: int
    questions: Tuple[QuestionStats, ...] = ()
    survey_id: Optional[str] = None
    title: Optional[str] = None
    raw_responses: Optional[Tuple[NormalizedResponse, ...]] = None

    def get_question(self, question_id: Any) -> Optional[QuestionStats]:
        for question in self.questions:
            if ids_match(question.id, question_id):
                return question
        return None

    def with_export_context(self,
                            survey: Survey,
                            responses: Tuple[NormalizedResponse, ...]) -> 'SurveyStats':
        """Return a copy enriched with survey id, title and raw responses."""
        return replace(self,
                       survey_id=survey.id,
                       title=survey.title,
                       raw_responses=tuple(responses))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.survey_id is not None:
            result['surveyId'] = self.survey_id
        if self.title is not None:
            result['title'] = self.title
        if self.raw_responses is not None:
            result['rawResponses'] = [r.to_dict() for r in self.raw_responses]
        result.update({
            'totalResponses': self.total_responses,
            'completionRate': self.completion_rate,
            'questions': [q.to_dict() for q in self.questions],
        })
        return result


@dataclass(frozen=True)
class DateRange:
    """Inclusive timestamp window; a missing bound means unbounded."""
    start: Optional[pd.Timestamp] = None
    end: Optional[pd.Timestamp] = None

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None


@dataclass(frozen=True)
class DropoffItem:
    """One row of the per-question dropoff breakdown."""
    question_number: int
    question_text: str
    dropoff_rate: int
    responded_count: int
    total_count: int
    severity: DropoffSeverity


@dataclass
class StatsConfig:
    """Tunable behaviour of the analytics pipeline, loaded from JSON config."""
    identity_question_ids: List[str] = field(default_factory=lambda: ['q_name'])
    identity_text_pattern: str = r"이름|\bname\b"
    multiple_choice_pattern: str = r"객관식|multiple[\s_-]?choice"
    multiple_select_pattern: str = r"checkbox|복수|다중|체크"
    text_sample_limit: int = 5
    filename_max_length: int = 80
    export_timezone: str = "UTC"
    name_header: str = "Name"
    submitted_header: str = "Submitted At"
    default_date_preset: str = "7d"

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> 'StatsConfig':
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (config or {}).items() if k in known}
        identity_ids = values.get('identity_question_ids')
        if identity_ids is not None and not isinstance(identity_ids, (list, tuple)):
            values['identity_question_ids'] = [identity_ids]
        return cls(**values)

    def compiled(self, name: str) -> Pattern:
        """Compile one of the ``*_pattern`` settings case-insensitively."""
        return re.compile(getattr(self, name), re.IGNORECASE)


# Type aliases for convenience
RawResponseRow = Dict[str, Any]
RawSurveyRow = Dict[str, Any]
