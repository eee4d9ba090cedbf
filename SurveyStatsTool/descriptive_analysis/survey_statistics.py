"""
Survey-level response statistics.

Folds a survey schema and a (filtered) response set into ``SurveyStats``:
total responses, completion rate, and for every non-identity question its
responded count, dropoff rate and either an option distribution or the list
of free-text answers.
"""

import logging
from collections.abc import Mapping
from typing import Iterable, List, Optional, Any

from ..data_processing.models import (
    DropoffItem, DropoffSeverity, NormalizedResponse, Question, QuestionStats,
    QuestionType, StatsConfig, Survey, SurveyStats, as_text, ids_match
)
from ..data_processing.option_normalizer import normalize_survey
from ..data_processing.response_normalizer import has_answered, normalize_response
from .distribution import DistributionCalculator, round_percent


class SurveyStatisticsAggregator:
    """
    Aggregates per-question statistics across a whole survey.

    Identity questions (the respondent's name) are excluded from every
    statistic but remain available to exporters through
    ``identity_question``.
    """

    def __init__(self, config: Optional[StatsConfig] = None):
        """
        Initialize the aggregator.

        Parameters
        ----------
        config : StatsConfig, optional
            Patterns for identity and choice question detection
        """
        self.config = config or StatsConfig()
        self.logger = logging.getLogger(__name__)
        self.distribution_calculator = DistributionCalculator()

        self._identity_ids = {as_text(i).lower() for i in self.config.identity_question_ids}
        self._identity_pattern = self.config.compiled('identity_text_pattern')
        self._multiple_choice_pattern = self.config.compiled('multiple_choice_pattern')
        self._multiple_select_pattern = self.config.compiled('multiple_select_pattern')

    def is_identity_question(self, question: Optional[Question]) -> bool:
        """Whether a question collects the respondent's identity."""
        if question is None:
            return False
        if as_text(question.id).lower() in self._identity_ids:
            return True
        return bool(self._identity_pattern.search(question.text or ""))

    def is_choice_question(self, question: Question) -> bool:
        """Radio, checkbox, or a type string flagged as multiple-choice."""
        if question.question_type in (QuestionType.RADIO, QuestionType.CHECKBOX):
            return True
        return bool(question.type and self._multiple_choice_pattern.search(question.type))

    def is_multiple_select(self, question: Question) -> bool:
        """Whether a question accepts several options per response."""
        if question.question_type is QuestionType.CHECKBOX:
            return True
        return bool(question.type and self._multiple_select_pattern.search(question.type))

    def identity_question(self, survey: Survey) -> Optional[Question]:
        """First identity question of a survey, if any."""
        for question in survey.questions:
            if self.is_identity_question(question):
                return question
        return None

    def statistical_questions(self, survey: Survey) -> List[Question]:
        """Questions that take part in aggregation, in survey order."""
        return [q for q in survey.questions if not self.is_identity_question(q)]

    def chartable_questions(self, survey: Any) -> List[Question]:
        """Non-identity questions that have at least one option."""
        survey = self._as_survey(survey)
        return [q for q in self.statistical_questions(survey) if q.options]

    def completion_rate(self, survey: Any, responses: Iterable[Any]) -> int:
        """
        Share of responses that answered every declared question.

        Completion compares a response's answer count with the survey's full
        question count, identity questions included.
        """
        survey = self._as_survey(survey)
        responses = [normalize_response(r) for r in responses]
        question_count = len(survey.questions)
        if not responses or not question_count:
            return 0
        completed = sum(1 for r in responses if len(r.answers) == question_count)
        return round_percent(completed, len(responses))

    def compute_survey_stats(self, survey: Any, responses: Iterable[Any]) -> SurveyStats:
        """
        Compute statistics for a survey over an already filtered response set.

        Parameters
        ----------
        survey : Survey or dict
            Survey schema
        responses : iterable of NormalizedResponse
            Responses to aggregate

        Returns
        -------
        SurveyStats
            Fresh statistics; identity questions are not included.
        """
        survey = self._as_survey(survey)
        responses = [normalize_response(r) for r in responses]
        total = len(responses)

        questions = tuple(
            self._question_stats(question, number, responses)
            for number, question in enumerate(self.statistical_questions(survey), start=1)
        )

        stats = SurveyStats(
            total_responses=total,
            completion_rate=self.completion_rate(survey, responses),
            questions=questions,
        )

        self.logger.info(
            f"Computed statistics for survey {survey.id or '<unknown>'}: "
            f"{total} responses, {len(questions)} questions, "
            f"{stats.completion_rate}% complete"
        )

        return stats

    def dropoff_items(self, stats: SurveyStats) -> List[DropoffItem]:
        """Per-question dropoff rows for the dropoff breakdown."""
        return [
            DropoffItem(
                question_number=q.number,
                question_text=q.text,
                dropoff_rate=q.dropoff_rate,
                responded_count=q.responded_count,
                total_count=stats.total_responses,
                severity=DropoffSeverity.from_rate(q.dropoff_rate),
            )
            for q in stats.questions
        ]

    def _question_stats(self,
                        question: Question,
                        number: int,
                        responses: List[NormalizedResponse]) -> QuestionStats:
        total = len(responses)
        responded = sum(1 for r in responses if has_answered(r, question.id))
        dropoff = round_percent(total - responded, total)

        options = ()
        text_answers = ()
        if self.is_choice_question(question):
            options = self.distribution_calculator.compute_option_stats(question, responses)
        else:
            text_answers = tuple(self._text_answers(question, responses))

        self.logger.debug(f"Question {question.id}: {responded}/{total} responded")

        return QuestionStats(
            id=question.id,
            number=number,
            text=question.text or f"Question {number}",
            type=question.type,
            responded_count=responded,
            dropoff_rate=dropoff,
            options=options,
            text_answers=text_answers,
            is_multiple=self.is_multiple_select(question),
        )

    @staticmethod
    def _text_answers(question: Question, responses: List[NormalizedResponse]) -> List[str]:
        """Non-blank answer texts in response order, without deduplication."""
        answers = []
        for response in responses:
            for answer in response.answers:
                if not ids_match(answer.question_id, question.id) or answer.value is None:
                    continue
                if isinstance(answer.value, (list, tuple)):
                    text = ", ".join(as_text(v) for v in answer.value if v is not None)
                else:
                    text = as_text(answer.value)
                if text.strip():
                    answers.append(text)
        return answers

    @staticmethod
    def _as_survey(survey: Any) -> Survey:
        if isinstance(survey, Mapping):
            return normalize_survey(survey)
        return survey


def compute_survey_stats(survey: Any, responses: Iterable[Any],
                         config: Optional[StatsConfig] = None) -> SurveyStats:
    """Module-level shortcut for ``SurveyStatisticsAggregator.compute_survey_stats``."""
    return SurveyStatisticsAggregator(config).compute_survey_stats(survey, responses)
