"""
Tabular export of survey statistics.

Two row shapes are produced from retained ``SurveyStats``:

- WIDE: one row per response. Columns are the respondent name, the
  submission time, then one column per non-identity question holding the
  answer labels joined with ", ".
- LONG: one row per (question, option) pair with the question-level
  statistics repeated; questions without options get a single row carrying
  up to ``text_sample_limit`` free-text samples joined with " | ".

CSV text is written by pandas with minimal quoting and CRLF row endings, so
any cell containing a comma, a double quote or a line break is quoted with
inner quotes doubled. CSV output starts with a UTF-8 byte-order mark.
"""

import json
import logging
import re
from pathlib import Path
from typing import List, Optional, Union, Any

import pandas as pd

from ..data_processing.date_filter import parse_timestamp
from ..data_processing.models import (
    ExportLayout, NormalizedResponse, Question, StatsConfig, Survey, SurveyStats, as_text
)
from ..descriptive_analysis.distribution import resolve_option
from ..descriptive_analysis.survey_statistics import SurveyStatisticsAggregator

BOM = "\ufeff"

LONG_COLUMNS = [
    'survey_id', 'survey_title', 'question_number', 'question_text',
    'question_type', 'responded_count', 'total_responses', 'dropoff_rate',
    'option_label', 'option_count', 'option_percent', 'text_samples',
]

_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9_.\-]+')


def sanitize_header(text: Any) -> str:
    """Collapse line breaks to spaces and trim."""
    return re.sub(r'[\r\n]', ' ', as_text(text)).strip()


class TabularExporter:
    """
    CSV/JSON exporter for retained survey statistics.

    The WIDE layout needs ``stats.raw_responses`` (see
    ``SurveyStats.with_export_context``); the LONG layout only needs the
    aggregated questions.
    """

    def __init__(self, config: Optional[StatsConfig] = None):
        self.config = config or StatsConfig()
        self.logger = logging.getLogger(__name__)
        self.aggregator = SurveyStatisticsAggregator(self.config)

    def wide_rows(self, stats: SurveyStats, survey: Survey) -> List[List[str]]:
        """Header plus one row per retained response."""
        name_question = self.aggregator.identity_question(survey)
        questions = self.aggregator.statistical_questions(survey)

        header = [self.config.name_header, self.config.submitted_header]
        header.extend(sanitize_header(q.text or f"Question {idx}")
                      for idx, q in enumerate(questions, start=1))
        rows = [header]

        if stats.raw_responses is None:
            self.logger.warning("Statistics carry no raw responses; wide export has no rows")

        for response in stats.raw_responses or ():
            line = [
                self._name_cell(response, name_question),
                self.format_timestamp(response.created_at),
            ]
            line.extend(self._answer_cell(response, q) for q in questions)
            rows.append(line)

        return rows

    def long_rows(self, stats: SurveyStats, survey: Optional[Survey] = None) -> List[List[str]]:
        """Header plus one row per (question, option) pair."""
        survey_id = stats.survey_id if stats.survey_id is not None else (survey.id if survey else "")
        title = stats.title if stats.title is not None else (survey.title if survey else "")
        rows = [list(LONG_COLUMNS)]

        for q in stats.questions:
            base = [
                as_text(survey_id), as_text(title), str(q.number), q.text, q.type,
                str(q.responded_count), str(stats.total_responses), str(q.dropoff_rate),
            ]
            if q.options:
                for option in q.options:
                    rows.append(base + [option.label, str(option.count), str(option.percent), ""])
            else:
                samples = " | ".join(q.text_answers[:self.config.text_sample_limit])
                rows.append(base + ["", "", "", samples])

        return rows

    def to_frame(self,
                 stats: SurveyStats,
                 survey: Optional[Survey] = None,
                 layout: Union[ExportLayout, str] = ExportLayout.WIDE) -> pd.DataFrame:
        """Export rows as a DataFrame of strings."""
        layout = ExportLayout(layout)
        if layout is ExportLayout.WIDE:
            if survey is None:
                raise ValueError("survey is required for the wide export layout")
            rows = self.wide_rows(stats, survey)
        else:
            rows = self.long_rows(stats, survey)
        return pd.DataFrame(rows[1:], columns=rows[0], dtype=object)

    def to_csv(self,
               stats: SurveyStats,
               survey: Optional[Survey] = None,
               layout: Union[ExportLayout, str] = ExportLayout.WIDE,
               include_bom: bool = True) -> str:
        """
        Render statistics as CSV text.

        Parameters
        ----------
        stats : SurveyStats
            Retained statistics to export
        survey : Survey, optional
            Survey schema; required for the wide layout
        layout : ExportLayout or str, default WIDE
            Row shape
        include_bom : bool, default True
            Prefix a UTF-8 byte-order mark for spreadsheet consumers

        Returns
        -------
        str
            CSV text
        """
        frame = self.to_frame(stats, survey, layout)
        csv_text = frame.to_csv(index=False, lineterminator='\r\n')
        self.logger.info(f"Exported {len(frame)} rows ({ExportLayout(layout).value} layout)")
        return (BOM + csv_text) if include_bom else csv_text

    def to_json(self, stats: SurveyStats) -> str:
        """Pretty-printed JSON of the retained statistics."""
        return json.dumps(stats.to_dict(), ensure_ascii=False, indent=2, default=str)

    def safe_filename(self, text: Any) -> str:
        """Replace characters outside ``[A-Za-z0-9_.-]`` and truncate."""
        cleaned = _UNSAFE_FILENAME_CHARS.sub('_', as_text(text))
        return cleaned[:self.config.filename_max_length] or 'survey'

    def export_filename(self, stats: SurveyStats, fmt: str = 'csv') -> str:
        """``<sanitized-title-or-id>_stats.<csv|json>``"""
        if fmt not in ('csv', 'json'):
            raise ValueError(f"Unsupported export format: {fmt}")
        return f"{self.safe_filename(stats.title or stats.survey_id)}_stats.{fmt}"

    def write_export(self,
                     stats: SurveyStats,
                     output_dir: Union[str, Path],
                     survey: Optional[Survey] = None,
                     fmt: str = 'csv',
                     layout: Union[ExportLayout, str] = ExportLayout.WIDE) -> Path:
        """
        Write an export file into ``output_dir``.

        CSV files carry a byte-order mark; JSON files are plain UTF-8.

        Returns
        -------
        Path
            Path of the written file
        """
        output_path = Path(output_dir) / self.export_filename(stats, fmt)

        if fmt == 'csv':
            content = self.to_csv(stats, survey, layout, include_bom=True)
        else:
            content = self.to_json(stats)

        with open(output_path, 'w', encoding='utf-8', newline='') as f:
            f.write(content)

        self.logger.info(f"Export saved to {output_path}")
        return output_path

    def format_timestamp(self, value: Any) -> str:
        """``YYYY-MM-DD HH:MM`` in the export timezone; raw text if unparsable."""
        if value is None or value == "":
            return ""
        timestamp = parse_timestamp(value)
        if timestamp is None:
            return as_text(value)
        return timestamp.tz_convert(self.config.export_timezone).strftime('%Y-%m-%d %H:%M')

    @staticmethod
    def _name_cell(response: NormalizedResponse, name_question: Optional[Question]) -> str:
        if name_question is None:
            return ""
        answer = response.answer_for(name_question.id)
        if answer is None or not answer.values:
            return ""
        return as_text(answer.values[0])

    @staticmethod
    def _answer_cell(response: NormalizedResponse, question: Question) -> str:
        answer = response.answer_for(question.id)
        if answer is None or answer.value is None:
            return ""
        labels = []
        for value in answer.values:
            match = resolve_option(question.options, value)
            labels.append(match.label if match is not None else as_text(value))
        return ", ".join(labels)
