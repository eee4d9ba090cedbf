"""
Tests for option, survey and response normalization.
"""

import json
import unittest

from SurveyStatsTool.data_processing.models import AnswerPair, NormalizedResponse, OptionRef
from SurveyStatsTool.data_processing.option_normalizer import (
    normalize_options, normalize_survey, normalize_surveys
)
from SurveyStatsTool.data_processing.response_normalizer import (
    answer_is_present, has_answered, normalize_response, normalize_responses
)


class TestOptionNormalizer(unittest.TestCase):
    """Test cases for option normalization."""

    def test_string_options(self):
        """Plain strings become identical label and value."""
        options = normalize_options(['Red', 'Green'])
        self.assertEqual(options, [OptionRef('Red', 'Red'), OptionRef('Green', 'Green')])

    def test_scalar_options_are_stringified(self):
        """Numbers are rendered as text."""
        options = normalize_options([1, 2.0, 3.5])
        self.assertEqual([o.value for o in options], ['1', '2', '3.5'])

    def test_object_options(self):
        """Objects use label, then text; value falls back to the label."""
        options = normalize_options([
            {'label': 'Yes', 'value': 'y'},
            {'text': 'No'},
            {'label': 'Maybe', 'value': 0},
        ])
        self.assertEqual(options[0], OptionRef('Yes', 'y'))
        self.assertEqual(options[1], OptionRef('No', 'No'))
        self.assertEqual(options[2], OptionRef('Maybe', '0'))

    def test_object_without_label_uses_value_id_or_position(self):
        """Missing labels fall back to value, id, then 1-based position."""
        options = normalize_options([{'value': 'v1'}, {'id': 'opt-b'}, {}])
        self.assertEqual(options[0], OptionRef('v1', 'v1'))
        self.assertEqual(options[1], OptionRef('opt-b', 'opt-b'))
        self.assertEqual(options[2], OptionRef('3', '3'))

    def test_non_list_yields_empty(self):
        """Anything that is not a list normalizes to no options."""
        self.assertEqual(normalize_options(None), [])
        self.assertEqual(normalize_options({'label': 'x'}), [])
        self.assertEqual(normalize_options('not json'), [])

    def test_length_is_preserved(self):
        """One canonical option per input element."""
        raw = ['a', {'label': 'b'}, None, 4]
        options = normalize_options(raw)
        self.assertEqual(len(options), len(raw))
        for option in options:
            self.assertIsInstance(option.label, str)
            self.assertIsInstance(option.value, str)

    def test_null_option_is_labelled(self):
        """A null option keeps its slot under a visible 'null' label."""
        options = normalize_options(['a', None])
        self.assertEqual(options[1], OptionRef('null', 'null'))
        self.assertNotEqual(options[1].label, '')


class TestSurveyNormalizer(unittest.TestCase):
    """Test cases for survey schema normalization."""

    def test_questions_from_json_text(self):
        """Question lists stored as JSON text are parsed."""
        row = {
            'survey_id': 'srv_1',
            'title': 'Lunch',
            'questions': json.dumps([
                {'id': 'q1', 'text': 'Favourite?', 'type': 'radio', 'options': ['Rice', 'Noodles']},
                {'id': 2, 'text': 'Why?', 'type': 'text'},
            ]),
        }
        survey = normalize_survey(row)

        self.assertEqual(survey.id, 'srv_1')
        self.assertEqual(survey.title, 'Lunch')
        self.assertEqual(len(survey.questions), 2)
        self.assertEqual(survey.questions[0].options[1].label, 'Noodles')
        self.assertEqual(survey.questions[1].id, '2')
        self.assertIsNotNone(survey.get_question(2))

    def test_malformed_questions_become_empty(self):
        """Unparsable question JSON yields an empty question list."""
        survey = normalize_survey({'id': 'srv_2', 'questions': '{broken'})
        self.assertEqual(survey.questions, ())

    def test_non_mapping_rows_are_skipped(self):
        """Rows that are not mappings are dropped."""
        surveys = normalize_surveys([{'id': 'a'}, 'junk', None])
        self.assertEqual([s.id for s in surveys], ['a'])


class TestResponseNormalizer(unittest.TestCase):
    """Test cases for response normalization."""

    def test_map_and_list_forms_are_equivalent(self):
        """A keyed map and a pair list normalize to the same answers."""
        from_map = normalize_response({'answers': {'q_1': 'A'}})
        from_list = normalize_response({'answers': [{'questionId': 'q_1', 'value': 'A'}]})
        self.assertEqual(from_map.answers, from_list.answers)

    def test_json_text_answers(self):
        """Serialized answers are parsed."""
        response = normalize_response({
            'answers': json.dumps({'q1': ['a', 'b'], 'q2': 'text'}),
            'created_at': '2024-05-01T10:00:00Z',
        })
        self.assertEqual(response.answers[0], AnswerPair('q1', ('a', 'b')))
        self.assertEqual(response.answers[1], AnswerPair('q2', 'text'))
        self.assertEqual(response.created_at, '2024-05-01T10:00:00Z')

    def test_unparsable_answers_do_not_abort_batch(self):
        """A malformed row yields an empty answer list; the batch continues."""
        responses = normalize_responses([
            {'answers': '{not json', 'created_at': 't1'},
            {'answers': {'q1': 'x'}, 'created_at': 't2'},
        ])
        self.assertEqual(len(responses), 2)
        self.assertEqual(responses[0].answers, ())
        self.assertEqual(len(responses[1].answers), 1)

    def test_other_shapes_yield_empty_answers(self):
        """Numbers, None and non-mapping rows give empty responses."""
        responses = normalize_responses([{'answers': 42}, {'answers': None}, 'junk'])
        self.assertTrue(all(r.answers == () for r in responses))

    def test_order_is_preserved(self):
        """Output order follows input order with no deduplication."""
        rows = [{'answers': {'q': str(i)}, 'createdAt': f't{i}'} for i in range(5)]
        rows.append(rows[0])
        responses = normalize_responses(rows)
        self.assertEqual([r.created_at for r in responses], ['t0', 't1', 't2', 't3', 't4', 't0'])

    def test_numeric_question_ids_are_normalized(self):
        """Numeric ids are stored in string form."""
        response = normalize_response({'answers': [{'questionId': 7, 'value': 'x'}]})
        self.assertEqual(response.answers[0].question_id, '7')
        self.assertIsNotNone(response.answer_for('7'))
        self.assertIsNotNone(response.answer_for(7))

    def test_answer_presence(self):
        """Missing pairs and empty selections count as not responded."""
        self.assertFalse(answer_is_present(None))
        self.assertTrue(answer_is_present(AnswerPair('q', None)))
        self.assertFalse(answer_is_present(AnswerPair('q', ())))
        self.assertTrue(answer_is_present(AnswerPair('q', ('a',))))
        self.assertTrue(answer_is_present(AnswerPair('q', 'text')))

        response = NormalizedResponse(answers=(AnswerPair('q1', ()), AnswerPair('q2', 'x')))
        self.assertFalse(has_answered(response, 'q1'))
        self.assertTrue(has_answered(response, 'q2'))
        self.assertFalse(has_answered(response, 'q3'))


if __name__ == '__main__':
    unittest.main()
