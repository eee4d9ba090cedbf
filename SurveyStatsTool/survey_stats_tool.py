"""
Main Survey Stats Tool class.

This module provides the primary interface for survey response analytics,
wiring data loading, date filtering, statistics aggregation and export
together around an ``AnalyticsSession``.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union, Any

from .data_processing import (
    DataLoader, DateRangePreset, Distribution, DropoffItem, ExportLayout,
    NormalizedResponse, StatsConfig, Survey, SurveyStats
)
from .data_processing.date_filter import coerce_preset, filter_by_date_range
from .descriptive_analysis import DistributionCalculator, SurveyStatisticsAggregator, format_top_option
from .reporting import TabularExporter
from . import session as session_ops
from .session import AnalyticsSession


class SurveyStatsTool:
    """
    Survey response analytics tool.

    This is the main interface that integrates all components, providing a
    single API for the results view: load surveys, select one, narrow by
    date range, read statistics and export them.

    Features:
    - Survey and response loading from JSON/CSV dumps or an SQL database
    - Date-range presets (7 days, 1 month, 6 months, 1 year, all time)
    - Completion rate, per-question dropoff and option distributions
    - Free-text answer collection for non-choice questions
    - Wide (per response) and long (per option) CSV exports, JSON export
    """

    def __init__(self,
                 config_path: Optional[str] = None,
                 connection_string: Optional[str] = None,
                 log_level: str = 'INFO'):
        """
        Initialize the Survey Stats Tool.

        Parameters
        ----------
        config_path : str, optional
            Path to JSON configuration file
        connection_string : str, optional
            SQLAlchemy connection string of the survey database
        log_level : str, default 'INFO'
            Logging level
        """
        # Setup logging
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        self.logger = logging.getLogger(__name__)

        # Configuration
        self.config = StatsConfig.from_dict(self._load_config(config_path) if config_path else {})

        # Initialize components
        self.data_loader = DataLoader(connection_string=connection_string)
        self.aggregator = SurveyStatisticsAggregator(self.config)
        self.distribution_calculator = DistributionCalculator()
        self.exporter = TabularExporter(self.config)

        self.session = AnalyticsSession(date_preset=coerce_preset(self.config.default_date_preset))

        self.logger.info("Survey Stats Tool initialized successfully")

    @property
    def latest_stats(self) -> Optional[SurveyStats]:
        """Statistics of the selected survey under the active date range."""
        return self.session.latest_stats

    def load_survey_data(self, file_path: Union[str, Path]) -> List[Survey]:
        """
        Load surveys and results from a dump file.

        Parameters
        ----------
        file_path : str or Path
            JSON dump or CSV export of the results table

        Returns
        -------
        list of Survey
            Surveys found in the file
        """
        self.logger.info(f"Loading survey data from {file_path}")

        try:
            surveys, results = self.data_loader.load_data(file_path)
            self.session = session_ops.set_surveys(self.session, surveys)

            self.logger.info(
                f"Successfully loaded {len(surveys)} surveys and {len(results)} result rows"
            )

            return surveys

        except Exception as e:
            self.logger.error(f"Failed to load survey data: {e}")
            raise

    def connect_database(self, connection_string: str) -> List[Survey]:
        """Read surveys and results from an SQL database from now on."""
        self.data_loader.load_from_database(connection_string)
        return self.refresh_surveys()

    def refresh_surveys(self) -> List[Survey]:
        """Re-read survey schemas from the data source."""
        surveys = self.data_loader.list_surveys()
        self.session = session_ops.set_surveys(self.session, surveys)
        self.logger.info(f"{len(surveys)} surveys available")
        return surveys

    def select_survey(self, survey_id: Any) -> Optional[SurveyStats]:
        """
        Select a survey, fetch its responses and compute statistics.

        Parameters
        ----------
        survey_id : str
            Survey to select; None clears the selection

        Returns
        -------
        SurveyStats or None
            Statistics under the active date range. A failed fetch yields
            statistics over an empty response set.
        """
        self.session, ticket = session_ops.select_survey(self.session, survey_id)
        if ticket is None:
            return None

        self.logger.info(f"Fetching responses for survey {ticket.survey_id}")

        try:
            rows = self.data_loader.list_results(ticket.survey_id)
        except Exception as e:
            self.logger.error(f"Response fetch failed: {e}")
            self.session = session_ops.fetch_failed(self.session, ticket, self.aggregator)
            return self.session.latest_stats

        self.session = session_ops.receive_responses(self.session, ticket, rows, self.aggregator)
        return self.session.latest_stats

    def apply_date_range(self, preset: Union[DateRangePreset, str]) -> Optional[SurveyStats]:
        """Switch the date-range preset and recompute statistics."""
        self.session = session_ops.apply_date_range(self.session, preset, self.aggregator)
        self.logger.info(f"Date range set to {self.session.date_preset.label}")
        return self.session.latest_stats

    def compute_survey_stats(self, survey: Any, responses: List[Any]) -> SurveyStats:
        """Compute statistics for explicit inputs, leaving the session untouched."""
        try:
            return self.aggregator.compute_survey_stats(survey, responses)
        except Exception as e:
            self.logger.error(f"Statistics computation failed: {e}")
            raise

    def filter_by_date_range(self,
                             responses: List[NormalizedResponse],
                             start: Any = None,
                             end: Any = None) -> List[NormalizedResponse]:
        """Filter explicit responses by an inclusive timestamp window."""
        return filter_by_date_range(responses, start, end)

    def compute_distribution(self, question_id: Any) -> Distribution:
        """Option distribution of a question of the selected survey."""
        survey = self.session.get_survey()
        question = survey.get_question(question_id) if survey else None
        if question is None:
            return Distribution()
        return self.distribution_calculator.compute_distribution(
            question, self.session.filtered_responses()
        )

    def chartable_questions(self) -> List[Dict[str, str]]:
        """Questions of the selected survey that can be charted by option."""
        survey = self.session.get_survey()
        if survey is None:
            return []
        return [
            {'id': q.id, 'text': (q.text or f"Question {idx}")[:60]}
            for idx, q in enumerate(self.aggregator.chartable_questions(survey), start=1)
        ]

    def question_kpi(self, question_id: Any) -> Dict[str, Any]:
        """Headline figures for one question of the latest statistics."""
        stats = self.session.latest_stats
        if stats is None:
            return {'total_responses': 0, 'top_option': '-', 'title': '', 'responded_count': 0}

        question = stats.get_question(question_id)
        title = ''
        if question is not None:
            title = f"Q{question.number}. {question.text}"
            if question.is_multiple:
                title += " (multiple selection)"

        return {
            'total_responses': stats.total_responses,
            'top_option': format_top_option(question),
            'title': title,
            'responded_count': question.responded_count if question else 0,
        }

    def dropoff_items(self) -> List[DropoffItem]:
        """Per-question dropoff breakdown of the latest statistics."""
        if self.session.latest_stats is None:
            return []
        return self.aggregator.dropoff_items(self.session.latest_stats)

    def response_counts(self) -> Dict[str, int]:
        """Stored response count per known survey."""
        return self.data_loader.response_counts([s.id for s in self.session.surveys])

    def export_stats(self,
                     output_dir: Union[str, Path],
                     fmt: str = 'csv',
                     layout: Union[ExportLayout, str] = ExportLayout.WIDE) -> Path:
        """
        Export the latest statistics to a file.

        Parameters
        ----------
        output_dir : str or Path
            Directory to write into
        fmt : str, default 'csv'
            'csv' or 'json'
        layout : ExportLayout or str, default WIDE
            CSV row shape

        Returns
        -------
        Path
            Path of the written file
        """
        stats = self.session.latest_stats
        if stats is None or not self.session.selected_survey_id:
            raise ValueError("No statistics computed. Call select_survey() first.")

        self.logger.info(f"Exporting statistics as {fmt}")

        try:
            survey = self.session.get_survey() or Survey(id=self.session.selected_survey_id)
            return self.exporter.write_export(stats, output_dir, survey, fmt, layout)

        except Exception as e:
            self.logger.error(f"Export failed: {e}")
            raise

    def get_analysis_summary(self) -> Dict[str, Any]:
        """
        Get summary of the current session.

        Returns
        -------
        dict
            Summary of the session state
        """
        stats = self.session.latest_stats
        summary = {
            'n_surveys': len(self.session.surveys),
            'selected_survey': self.session.selected_survey_id,
            'date_range': self.session.date_preset.value,
            'stats_available': stats is not None,
        }

        if stats is not None:
            summary['total_responses'] = stats.total_responses
            summary['completion_rate'] = stats.completion_rate
            summary['n_questions'] = len(stats.questions)

        return summary

    def _load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from file."""
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
            self.logger.info(f"Configuration loaded from {config_path}")
            return config
        except Exception as e:
            self.logger.warning(f"Failed to load configuration: {e}")
            return {}
