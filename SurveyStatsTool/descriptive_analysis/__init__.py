"""Descriptive analysis module for survey responses."""

from .distribution import DistributionCalculator, compute_distribution, top_option, format_top_option
from .survey_statistics import SurveyStatisticsAggregator, compute_survey_stats

__all__ = [
    'DistributionCalculator',
    'SurveyStatisticsAggregator',
    'compute_distribution',
    'compute_survey_stats',
    'top_option',
    'format_top_option'
]
