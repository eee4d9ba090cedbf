"""
Normalization of survey schemas and question options.

Options arrive either as plain strings or as objects exposing some of
``label``/``text``/``value``/``id``; persisted schema rows may carry their
question list as serialized JSON. This module converts both into the
canonical ``Survey``/``Question``/``OptionRef`` shapes once, at the boundary.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Tuple

from .models import OptionRef, Question, Survey, as_text, normalize_id

logger = logging.getLogger(__name__)


def _first_present(mapping: Mapping, *keys: str) -> Any:
    """Value of the first key that is present and not None."""
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def normalize_option(raw: Any, position: int) -> OptionRef:
    """
    Normalize a single option.

    Parameters
    ----------
    raw : any
        A scalar, an ``OptionRef`` or a mapping with label/text/value/id keys
    position : int
        1-based position of the option, used when nothing else names it
    """
    if isinstance(raw, OptionRef):
        return raw

    if isinstance(raw, Mapping):
        label = _first_present(raw, 'label', 'text')
        if label is None:
            fallback = _first_present(raw, 'value', 'id')
            label = fallback if fallback is not None else position
        value = _first_present(raw, 'value', 'label', 'text')
        if value is None:
            value = label
        return OptionRef(label=as_text(label), value=as_text(value))

    if raw is None:
        logger.debug(f"Option {position} is null")
        return OptionRef(label='null', value='null')

    text = as_text(raw)
    return OptionRef(label=text, value=text)


def normalize_options(raw: Any) -> List[OptionRef]:
    """
    Convert a heterogeneous option list into canonical ``OptionRef`` values.

    Anything that is not a list yields an empty result. The output has one
    entry per input element, in input order.
    """
    if isinstance(raw, str):
        raw = _parse_json(raw, default=None, what="options")
    if not isinstance(raw, (list, tuple)):
        return []
    return [normalize_option(item, idx + 1) for idx, item in enumerate(raw)]


def normalize_question(raw: Any, position: int = 1) -> Optional[Question]:
    """Normalize one question mapping; non-mappings are skipped."""
    if isinstance(raw, Question):
        return raw
    if not isinstance(raw, Mapping):
        return None

    question_id = normalize_id(raw.get('id'))
    if question_id is None:
        question_id = f"q_{position}"

    order = raw.get('order', position)
    try:
        order = int(order)
    except (TypeError, ValueError):
        order = position

    return Question(
        id=question_id,
        order=order,
        text=as_text(raw.get('text')),
        type=as_text(raw.get('type')),
        required=bool(raw.get('required', False)),
        options=tuple(normalize_options(raw.get('options'))),
    )


def normalize_questions(raw: Any) -> Tuple[Question, ...]:
    """Normalize a question list, accepting serialized JSON text."""
    if isinstance(raw, str):
        raw = _parse_json(raw, default=[], what="questions")
    if not isinstance(raw, (list, tuple)):
        return ()

    questions = []
    for idx, item in enumerate(raw):
        question = normalize_question(item, idx + 1)
        if question is None:
            logger.debug(f"Skipping malformed question at position {idx + 1}")
            continue
        questions.append(question)
    return tuple(questions)


def normalize_survey(raw: Any) -> Survey:
    """
    Normalize a persisted survey row.

    Accepts ``survey_id`` or ``id`` as the identifier and a question list
    given either directly or as JSON text.
    """
    if isinstance(raw, Survey):
        return raw

    survey_id = _first_present(raw, 'survey_id', 'id')
    return Survey(
        id=as_text(survey_id),
        title=as_text(raw.get('title')),
        questions=normalize_questions(raw.get('questions')),
        description=as_text(raw.get('description')),
    )


def normalize_surveys(rows: Optional[Iterable[Any]]) -> List[Survey]:
    """Normalize survey rows, dropping anything that is not a mapping."""
    surveys = []
    for row in rows or []:
        if isinstance(row, (Survey, Mapping)):
            surveys.append(normalize_survey(row))
        else:
            logger.warning(f"Ignoring survey row of type {type(row).__name__}")
    return surveys


def _parse_json(text: str, default: Any, what: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not parse {what} JSON: {e}")
        return default
