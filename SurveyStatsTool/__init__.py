"""
Survey Stats Tool

Response analytics for survey results: normalizes persisted surveys and
responses, filters them by submission date, and derives completion rates,
per-question dropoff, option distributions and CSV/JSON exports.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .survey_stats_tool import SurveyStatsTool
from .session import AnalyticsSession, FetchTicket
from .descriptive_analysis import compute_distribution, compute_survey_stats
from .data_processing import filter_by_date_range
from .data_processing.models import (
    QuestionType,
    DateRangePreset,
    ExportLayout,
    Survey,
    Question,
    NormalizedResponse,
    SurveyStats,
    QuestionStats,
    StatsConfig
)

__all__ = [
    'SurveyStatsTool',
    'AnalyticsSession',
    'FetchTicket',
    'compute_distribution',
    'compute_survey_stats',
    'filter_by_date_range',
    'QuestionType',
    'DateRangePreset',
    'ExportLayout',
    'Survey',
    'Question',
    'NormalizedResponse',
    'SurveyStats',
    'QuestionStats',
    'StatsConfig'
]
