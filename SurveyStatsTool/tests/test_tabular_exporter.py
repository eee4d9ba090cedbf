"""
Tests for CSV and JSON export of survey statistics.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from SurveyStatsTool.data_processing.models import ExportLayout, StatsConfig, SurveyStats
from SurveyStatsTool.data_processing.option_normalizer import normalize_survey
from SurveyStatsTool.data_processing.response_normalizer import normalize_responses
from SurveyStatsTool.descriptive_analysis.survey_statistics import SurveyStatisticsAggregator
from SurveyStatsTool.reporting.tabular_exporter import BOM, LONG_COLUMNS, TabularExporter, sanitize_header


class TestTabularExporter(unittest.TestCase):
    """Test cases for TabularExporter."""

    def setUp(self):
        """Build retained statistics for a small survey."""
        self.temp_dir = tempfile.mkdtemp()
        self.exporter = TabularExporter()
        self.survey = normalize_survey({
            'survey_id': 'srv_7',
            'title': 'Team lunch',
            'questions': [
                {'id': 'q_name', 'text': 'Name', 'type': 'text'},
                {'id': 'q1', 'text': 'Menu', 'type': 'radio',
                 'options': [{'label': 'Rice bowl', 'value': 'rice'}, {'label': 'Noodles', 'value': 'noodle'}]},
                {'id': 'q2', 'text': 'Any\ncomments?', 'type': 'text'},
            ],
        })
        self.responses = tuple(normalize_responses([
            {'answers': {'q_name': 'Kim', 'q1': 'rice', 'q2': 'A, "B"'},
             'created_at': '2024-03-05T14:07:00Z'},
            {'answers': {'q_name': ['Lee', 'ignored'], 'q1': 'Noodles', 'q2': 'Line one\nline two'},
             'created_at': 'not a date'},
        ]))
        stats = SurveyStatisticsAggregator().compute_survey_stats(self.survey, self.responses)
        self.stats = stats.with_export_context(self.survey, self.responses)

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir)

    def test_wide_rows(self):
        """One row per response with name, timestamp and answer labels."""
        rows = self.exporter.wide_rows(self.stats, self.survey)

        self.assertEqual(rows[0], ['Name', 'Submitted At', 'Menu', 'Any comments?'])
        self.assertEqual(rows[1], ['Kim', '2024-03-05 14:07', 'Rice bowl', 'A, "B"'])
        self.assertEqual(rows[2][0], 'Lee')
        self.assertEqual(rows[2][1], 'not a date')
        self.assertEqual(rows[2][2], 'Noodles')

    def test_csv_quoting_and_bom(self):
        """Cells with commas, quotes or line breaks are quoted; output starts with a BOM."""
        text = self.exporter.to_csv(self.stats, self.survey)

        self.assertTrue(text.startswith(BOM))
        lines = text[len(BOM):].split('\r\n')
        self.assertEqual(lines[0], 'Name,Submitted At,Menu,Any comments?')
        self.assertEqual(lines[1], 'Kim,2024-03-05 14:07,Rice bowl,"A, ""B"""')
        self.assertIn('"Line one\nline two"', text)

    def test_multi_select_cell_resolves_labels(self):
        """Selections resolve to labels; unknown values pass through verbatim."""
        survey = normalize_survey({'id': 'fruit', 'title': 'Fruit', 'questions': [
            {'id': 'q1', 'text': 'Pick', 'type': 'checkbox',
             'options': [{'label': 'Apple', 'value': 'a'}, {'label': 'Banana', 'value': 'b'}]},
        ]})
        responses = tuple(normalize_responses([
            {'answers': {'q1': ['a', 'Banana', 'zzz']}, 'created_at': '2024-01-01T00:00:00Z'},
        ]))
        stats = SurveyStatisticsAggregator().compute_survey_stats(survey, responses)
        stats = stats.with_export_context(survey, responses)

        rows = self.exporter.wide_rows(stats, survey)
        self.assertEqual(rows[1][2], 'Apple, Banana, zzz')

        text = self.exporter.to_csv(stats, survey)
        self.assertEqual(text, BOM + 'Name,Submitted At,Pick\r\n,2024-01-01 00:00,"Apple, Banana, zzz"\r\n')

    def test_csv_without_bom(self):
        text = self.exporter.to_csv(self.stats, self.survey, include_bom=False)
        self.assertTrue(text.startswith('Name,'))

    def test_wide_layout_requires_survey(self):
        """The wide layout cannot be produced without a schema."""
        with self.assertRaises(ValueError):
            self.exporter.to_csv(self.stats)

    def test_wide_rows_without_raw_responses(self):
        """Stats not retained for export yield a header only."""
        bare = SurveyStats(total_responses=0, completion_rate=0)
        rows = self.exporter.wide_rows(bare, self.survey)
        self.assertEqual(len(rows), 1)

    def test_long_rows(self):
        """One row per option; text questions carry samples."""
        rows = self.exporter.long_rows(self.stats)

        self.assertEqual(rows[0], LONG_COLUMNS)
        self.assertEqual(len(rows), 4)
        self.assertEqual(rows[1][:2], ['srv_7', 'Team lunch'])
        self.assertEqual(rows[1][8:11], ['Rice bowl', '1', '50'])
        self.assertEqual(rows[3][8:11], ['', '', ''])
        self.assertEqual(rows[3][11], 'A, "B" | Line one\nline two')

    def test_long_rows_limit_text_samples(self):
        """Only the first few text answers are kept as samples."""
        exporter = TabularExporter(StatsConfig(text_sample_limit=5))
        survey = normalize_survey({'id': 's', 'title': 'T', 'questions': [{'id': 't', 'text': 'Why?'}]})
        responses = normalize_responses([{'answers': {'t': f'answer {i}'}} for i in range(8)])
        stats = SurveyStatisticsAggregator().compute_survey_stats(survey, responses)

        rows = exporter.long_rows(stats, survey)

        self.assertEqual(rows[1][11], ' | '.join(f'answer {i}' for i in range(5)))
        self.assertEqual(rows[1][0], 's')

    def test_long_layout_csv(self):
        text = self.exporter.to_csv(self.stats, layout=ExportLayout.LONG, include_bom=False)
        self.assertTrue(text.startswith(','.join(LONG_COLUMNS) + '\r\n'))

    def test_sanitize_header(self):
        self.assertEqual(sanitize_header('  Multi\r\nline  '), 'Multi  line')
        self.assertEqual(sanitize_header(None), '')

    def test_safe_filename(self):
        """Unsafe runs become underscores; long names are truncated."""
        self.assertEqual(self.exporter.safe_filename('설문 결과 2024!'), '_2024_')
        self.assertEqual(self.exporter.safe_filename('a' * 100), 'a' * 80)
        self.assertEqual(self.exporter.safe_filename(''), 'survey')
        self.assertEqual(self.exporter.safe_filename('report-v1.2'), 'report-v1.2')

    def test_export_filename(self):
        self.assertEqual(self.exporter.export_filename(self.stats), 'Team_lunch_stats.csv')
        self.assertEqual(self.exporter.export_filename(self.stats, 'json'), 'Team_lunch_stats.json')
        with self.assertRaises(ValueError):
            self.exporter.export_filename(self.stats, 'xlsx')

    def test_write_csv_export(self):
        """CSV files start with the UTF-8 byte-order mark."""
        path = self.exporter.write_export(self.stats, self.temp_dir, self.survey)

        self.assertEqual(path, Path(self.temp_dir) / 'Team_lunch_stats.csv')
        data = path.read_bytes()
        self.assertTrue(data.startswith(b'\xef\xbb\xbf'))
        self.assertIn(b'\r\n', data)

    def test_write_json_export(self):
        """JSON exports hold the retained statistics without a BOM."""
        path = self.exporter.write_export(self.stats, self.temp_dir, fmt='json')

        data = path.read_bytes()
        self.assertFalse(data.startswith(b'\xef\xbb\xbf'))
        payload = json.loads(data.decode('utf-8'))
        self.assertEqual(payload['surveyId'], 'srv_7')
        self.assertEqual(payload['totalResponses'], 2)
        self.assertEqual(len(payload['rawResponses']), 2)
        self.assertEqual(payload['questions'][0]['options'][0]['label'], 'Rice bowl')

    def test_format_timestamp(self):
        exporter = TabularExporter(StatsConfig(export_timezone='Asia/Seoul'))
        self.assertEqual(exporter.format_timestamp('2024-03-05T14:07:00Z'), '2024-03-05 23:07')
        self.assertEqual(exporter.format_timestamp(None), '')
        self.assertEqual(exporter.format_timestamp('soon'), 'soon')


if __name__ == '__main__':
    unittest.main()
