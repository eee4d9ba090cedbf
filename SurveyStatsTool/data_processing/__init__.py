"""Data processing module for survey response analytics."""

from .data_loader import DataLoader
from .option_normalizer import normalize_options, normalize_survey, normalize_surveys
from .response_normalizer import normalize_responses, answer_is_present
from .date_filter import filter_by_date_range, resolve_date_range, parse_timestamp
from .models import (
    QuestionType,
    DateRangePreset,
    DropoffSeverity,
    ExportLayout,
    OptionRef,
    Question,
    Survey,
    AnswerPair,
    NormalizedResponse,
    OptionStat,
    Distribution,
    QuestionStats,
    SurveyStats,
    DateRange,
    DropoffItem,
    StatsConfig
)

__all__ = [
    'DataLoader',
    'normalize_options',
    'normalize_survey',
    'normalize_surveys',
    'normalize_responses',
    'answer_is_present',
    'filter_by_date_range',
    'resolve_date_range',
    'parse_timestamp',
    'QuestionType',
    'DateRangePreset',
    'DropoffSeverity',
    'ExportLayout',
    'OptionRef',
    'Question',
    'Survey',
    'AnswerPair',
    'NormalizedResponse',
    'OptionStat',
    'Distribution',
    'QuestionStats',
    'SurveyStats',
    'DateRange',
    'DropoffItem',
    'StatsConfig'
]
