"""
Analytics session state.

``AnalyticsSession`` is an immutable value holding everything the results
view needs between computations: the known surveys, the selected survey,
the active date preset, the normalized responses fetched per survey and the
most recently computed statistics. Transitions are plain functions returning
a new session.

Fetching responses is the only asynchronous step. ``select_survey`` issues a
``FetchTicket``; ``receive_responses`` and ``fetch_failed`` ignore tickets
that are no longer pending, so a slow fetch for a survey the user has since
left never overwrites the current result.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .data_processing.date_filter import coerce_preset, filter_by_range, resolve_date_range
from .data_processing.models import (
    DateRangePreset, NormalizedResponse, Survey, SurveyStats, as_text, ids_match
)
from .data_processing.response_normalizer import normalize_responses
from .descriptive_analysis.survey_statistics import SurveyStatisticsAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchTicket:
    """Identifies one in-flight response fetch."""
    survey_id: str
    token: int


@dataclass(frozen=True)
class AnalyticsSession:
    """Immutable snapshot of the analytics view state."""
    surveys: Tuple[Survey, ...] = ()
    selected_survey_id: Optional[str] = None
    date_preset: DateRangePreset = DateRangePreset.LAST_7_DAYS
    responses_by_survey: Dict[str, Tuple[NormalizedResponse, ...]] = field(default_factory=dict)
    latest_stats: Optional[SurveyStats] = None
    pending: Optional[FetchTicket] = None
    next_token: int = 1

    def get_survey(self, survey_id: Any = None) -> Optional[Survey]:
        """Survey by id; defaults to the selected survey."""
        if survey_id is None:
            survey_id = self.selected_survey_id
        for survey in self.surveys:
            if ids_match(survey.id, survey_id):
                return survey
        return None

    def filtered_responses(self, now: Any = None) -> List[NormalizedResponse]:
        """Cached responses of the selected survey inside the active window."""
        if self.selected_survey_id is None:
            return []
        cached = self.responses_by_survey.get(self.selected_survey_id, ())
        return filter_by_range(cached, resolve_date_range(self.date_preset, now))

    def is_stale(self, ticket: Optional[FetchTicket]) -> bool:
        return ticket is None or ticket != self.pending


def set_surveys(session: AnalyticsSession, surveys: Iterable[Survey]) -> AnalyticsSession:
    """Replace the list of known surveys."""
    return replace(session, surveys=tuple(surveys))


def select_survey(session: AnalyticsSession,
                  survey_id: Any) -> Tuple[AnalyticsSession, Optional[FetchTicket]]:
    """
    Select a survey and issue a ticket for fetching its responses.

    Selecting nothing clears the selection and any pending fetch; no ticket
    is issued in that case.
    """
    if survey_id is None or as_text(survey_id) == "":
        return replace(session, selected_survey_id=None, latest_stats=None, pending=None), None

    ticket = FetchTicket(survey_id=as_text(survey_id), token=session.next_token)
    session = replace(session,
                      selected_survey_id=ticket.survey_id,
                      latest_stats=None,
                      pending=ticket,
                      next_token=session.next_token + 1)
    return session, ticket


def receive_responses(session: AnalyticsSession,
                      ticket: FetchTicket,
                      rows: Optional[Iterable[Any]],
                      aggregator: Optional[SurveyStatisticsAggregator] = None,
                      now: Any = None) -> AnalyticsSession:
    """
    Store fetched rows for the ticket's survey and recompute statistics.

    A stale ticket leaves the session untouched.
    """
    if session.is_stale(ticket):
        logger.debug(f"Discarding stale fetch for survey {ticket.survey_id if ticket else None}")
        return session

    cache = dict(session.responses_by_survey)
    cache[ticket.survey_id] = tuple(normalize_responses(rows))
    session = replace(session, responses_by_survey=cache, pending=None)
    return rebuild_stats(session, aggregator, now)


def fetch_failed(session: AnalyticsSession,
                 ticket: FetchTicket,
                 aggregator: Optional[SurveyStatisticsAggregator] = None,
                 now: Any = None) -> AnalyticsSession:
    """Degrade a failed fetch to an empty response set for the survey."""
    if session.is_stale(ticket):
        return session
    logger.warning(f"Response fetch failed for survey {ticket.survey_id}; using empty result")
    return receive_responses(session, ticket, [], aggregator, now)


def apply_date_range(session: AnalyticsSession,
                     preset: Union[DateRangePreset, str, None],
                     aggregator: Optional[SurveyStatisticsAggregator] = None,
                     now: Any = None) -> AnalyticsSession:
    """Switch the date preset and recompute from the cached snapshot."""
    session = replace(session, date_preset=coerce_preset(preset))
    return rebuild_stats(session, aggregator, now)


def rebuild_stats(session: AnalyticsSession,
                  aggregator: Optional[SurveyStatisticsAggregator] = None,
                  now: Any = None) -> AnalyticsSession:
    """
    Rerun the whole pipeline over the cached responses of the selected survey.

    The resulting stats are retained with survey id, title and the filtered
    raw responses so they can be exported without recomputation.
    """
    survey_id = session.selected_survey_id
    if survey_id is None:
        return session
    if survey_id not in session.responses_by_survey:
        # still waiting for the fetch
        return session

    aggregator = aggregator or SurveyStatisticsAggregator()
    survey = session.get_survey(survey_id) or Survey(id=survey_id)
    responses = session.filtered_responses(now)

    stats = aggregator.compute_survey_stats(survey, responses)
    return replace(session, latest_stats=stats.with_export_context(survey, responses))
