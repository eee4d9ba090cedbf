"""
Normalization of persisted response rows.

Persisted rows store their answers either as a list of
``{questionId, value}`` pairs or as a mapping from question id to value,
possibly serialized as JSON text. Both are converted into
``NormalizedResponse`` values carrying a tuple of ``AnswerPair``.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Tuple

from .models import AnswerPair, NormalizedResponse, normalize_id, ids_match

logger = logging.getLogger(__name__)

__all__ = [
    'normalize_response',
    'normalize_responses',
    'answer_is_present',
    'has_answered',
    'normalize_id',
    'ids_match',
]


def _freeze_value(value: Any) -> Any:
    """Lists become tuples so normalized responses stay immutable."""
    if isinstance(value, list):
        return tuple(value)
    return value


def _parse_answers(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode('utf-8', errors='replace')
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning(f"Unparsable answers payload treated as empty: {e}")
            return {}
    return raw


def _answer_pairs(payload: Any) -> Tuple[AnswerPair, ...]:
    if isinstance(payload, (list, tuple)):
        pairs = []
        for item in payload:
            if isinstance(item, AnswerPair):
                pairs.append(item)
            elif isinstance(item, Mapping):
                pairs.append(AnswerPair(
                    question_id=normalize_id(item.get('questionId')),
                    value=_freeze_value(item.get('value')),
                ))
            else:
                logger.debug(f"Skipping answer entry of type {type(item).__name__}")
        return tuple(pairs)

    if isinstance(payload, Mapping):
        return tuple(
            AnswerPair(question_id=normalize_id(key), value=_freeze_value(value))
            for key, value in payload.items()
        )

    return ()


def normalize_response(row: Any) -> NormalizedResponse:
    """
    Normalize a single persisted row.

    Rows that are not mappings, or whose answers cannot be parsed, produce a
    response with no answers instead of failing.
    """
    if isinstance(row, NormalizedResponse):
        return row
    if not isinstance(row, Mapping):
        logger.warning(f"Response row of type {type(row).__name__} treated as empty")
        return NormalizedResponse()

    created_at = row.get('created_at')
    if created_at is None:
        created_at = row.get('createdAt')

    payload = _parse_answers(row.get('answers'))
    return NormalizedResponse(answers=_answer_pairs(payload), created_at=created_at)


def normalize_responses(rows: Optional[Iterable[Any]]) -> List[NormalizedResponse]:
    """
    Normalize a batch of persisted rows, preserving order.

    There is no deduplication or reordering; one output per input row.
    """
    responses = [normalize_response(row) for row in rows or []]
    logger.debug(f"Normalized {len(responses)} response rows")
    return responses


def answer_is_present(answer: Optional[AnswerPair]) -> bool:
    """
    Whether an answer pair counts as "responded".

    Only a missing pair or an explicitly empty selection counts as not
    responded; a pair holding ``None`` still records that the question was
    answered.
    """
    if answer is None:
        return False
    if isinstance(answer.value, (list, tuple)) and len(answer.value) == 0:
        return False
    return True


def has_answered(response: NormalizedResponse, question_id: Any) -> bool:
    """Whether ``response`` holds a present answer for ``question_id``."""
    return any(
        ids_match(answer.question_id, question_id) and answer_is_present(answer)
        for answer in response.answers
    )
