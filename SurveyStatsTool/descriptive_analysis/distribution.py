"""
Per-question answer distributions.

Counts how often each canonical option of a question was selected across a
response set. Answers may reference an option by its value or by its display
label; values that match neither are tallied under their own text so legacy
or unexpected answers are never silently lost.
"""

import logging
import math
from collections import OrderedDict
from collections.abc import Mapping
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Any

import numpy as np

from ..data_processing.models import (
    Distribution, NormalizedResponse, OptionRef, OptionStat, Question,
    QuestionStats, as_text, ids_match
)
from ..data_processing.option_normalizer import normalize_options, normalize_question
from ..data_processing.response_normalizer import has_answered, normalize_response


def round_percent(numerator: float, denominator: float) -> int:
    """Percentage rounded half-up; 0 when the denominator is 0."""
    if not denominator:
        return 0
    return int(math.floor(numerator / denominator * 100 + 0.5))


def resolve_option(options: Sequence[OptionRef], raw: Any) -> Optional[OptionRef]:
    """Match a raw answer element by option value first, then by label."""
    key = as_text(raw)
    for option in options:
        if option.value == key:
            return option
    for option in options:
        if option.label == key:
            return option
    return None


class DistributionCalculator:
    """
    Option distributions for choice questions.

    Features:
    - Value-or-label resolution of answers against canonical options
    - Counting of unmatched answer values under ad-hoc keys
    - Percentages relative to the number of responses answering the question
    - Output in canonical option order, never sorted by count
    """

    def __init__(self):
        """Initialize the DistributionCalculator."""
        self.logger = logging.getLogger(__name__)

    def compute_distribution(self,
                             question: Any,
                             responses: Iterable[Any]) -> Distribution:
        """
        Count option selections for one question.

        Parameters
        ----------
        question : Question or dict
            Question whose options are counted
        responses : iterable of NormalizedResponse
            Response set to count over

        Returns
        -------
        Distribution
            Labels and counts in option order. Questions without options
            yield an empty distribution.
        """
        question = self._as_question(question)
        if question is None:
            return Distribution()

        options = normalize_options(list(question.options))
        if not options:
            return Distribution()

        responses = [normalize_response(r) for r in responses]
        counts, unmatched = self._count_selections(question, options, responses)

        if unmatched:
            self.logger.debug(
                f"Question {question.id}: {sum(unmatched.values())} selections "
                f"did not match any option"
            )

        return Distribution(
            labels=tuple(option.label for option in options),
            counts=tuple(counts[option.value] for option in options),
            unmatched=unmatched,
        )

    def compute_option_stats(self,
                             question: Any,
                             responses: Iterable[Any]) -> Tuple[OptionStat, ...]:
        """
        Counts with percentages for every option of a question.

        The percentage base is the number of responses that answered the
        question at all, so multi-select percentages can add up past 100
        while staying comparable across options.
        """
        question = self._as_question(question)
        if question is None:
            return ()

        responses = [normalize_response(r) for r in responses]
        distribution = self.compute_distribution(question, responses)
        if distribution.is_empty:
            return ()

        answered = sum(1 for r in responses if has_answered(r, question.id))
        counts = np.asarray(distribution.counts, dtype=float)

        if answered:
            percents = np.clip(np.floor(counts / answered * 100 + 0.5), 0, 100)
        else:
            percents = np.zeros_like(counts)

        return tuple(
            OptionStat(label=label, count=int(count), percent=int(percent))
            for label, count, percent in zip(distribution.labels, distribution.counts, percents)
        )

    def _count_selections(self,
                          question: Question,
                          options: List[OptionRef],
                          responses: List[NormalizedResponse]) -> Tuple[Dict[str, int], Dict[str, int]]:
        """Tally selections keyed by option value; unmatched values separately."""
        counts: Dict[str, int] = OrderedDict((option.value, 0) for option in options)
        unmatched: Dict[str, int] = OrderedDict()

        for response in responses:
            for answer in response.answers:
                if not ids_match(answer.question_id, question.id):
                    continue
                for element in answer.values:
                    if element is None:
                        continue
                    match = resolve_option(options, element)
                    if match is not None:
                        counts[match.value] += 1
                    else:
                        key = as_text(element)
                        unmatched[key] = unmatched.get(key, 0) + 1

        return counts, unmatched

    @staticmethod
    def _as_question(question: Any) -> Optional[Question]:
        if isinstance(question, Mapping):
            return normalize_question(question)
        return question


def top_option(options: Sequence[OptionStat]) -> Optional[OptionStat]:
    """
    Option with the highest count; ties go to the earliest option.

    Returns None when there are no options or every count is zero.
    """
    best = None
    for option in options:
        if best is None or option.count > best.count:
            best = option
    if best is None or best.count <= 0:
        return None
    return best


def format_top_option(question: Optional[QuestionStats]) -> str:
    """KPI text for a question's leading option, ``"-"`` when there is none."""
    if question is None:
        return "-"
    best = top_option(question.options)
    if best is None:
        return "-"
    return f"{best.label} ({best.percent}%)"


def compute_distribution(question: Any, responses: Iterable[Any]) -> Distribution:
    """Module-level shortcut for ``DistributionCalculator().compute_distribution``."""
    return DistributionCalculator().compute_distribution(question, responses)
