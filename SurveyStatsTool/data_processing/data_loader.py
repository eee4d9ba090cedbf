"""
Loader for persisted survey schemas and response rows.

This module is the read side of the persistence collaborator. It serves two
operations, "list survey schemas" and "list raw response rows for a survey",
from a JSON dump, a CSV export of the results table, or an SQL database
holding the ``surveys`` and ``results`` tables. Fetch failures are logged and
degrade to empty results so that aggregation always receives valid input.
"""

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Union, Tuple, Any

import pandas as pd
import sqlalchemy

from .models import RawResponseRow, RawSurveyRow, Survey, as_text, ids_match
from .option_normalizer import normalize_surveys


class DataLoader:
    """
    Read-only access to survey schemas and response rows.

    Supports:
    - JSON dumps (``{"surveys": [...], "results": [...]}`` or a bare list of
      result rows)
    - CSV/TSV exports of the results table
    - SQL databases through SQLAlchemy
    """

    SURVEYS_QUERY = "SELECT * FROM surveys ORDER BY created_at DESC"
    RESULTS_QUERY = ("SELECT * FROM results WHERE survey_id = :survey_id "
                     "ORDER BY created_at DESC")

    def __init__(self, encoding: str = 'utf-8-sig', connection_string: Optional[str] = None):
        """
        Initialize the DataLoader.

        Parameters
        ----------
        encoding : str, default 'utf-8-sig'
            Text encoding for file reading; the default also strips a BOM.
        connection_string : str, optional
            SQLAlchemy connection string. When set, listings query the database.
        """
        self.encoding = encoding
        self.connection_string = connection_string
        self.logger = logging.getLogger(__name__)
        self._engine: Optional[sqlalchemy.engine.Engine] = None

        self._survey_rows: List[RawSurveyRow] = []
        self._result_rows: List[RawResponseRow] = []

        # File format handlers
        self._handlers = {
            '.json': self._load_json,
            '.csv': self._load_csv,
            '.tsv': self._load_csv,
        }

    def load_data(self, file_path: Union[str, Path]) -> Tuple[List[Survey], List[RawResponseRow]]:
        """
        Load survey schemas and result rows from a file.

        Parameters
        ----------
        file_path : str or Path
            Path to the data file

        Returns
        -------
        tuple
            (normalized surveys, raw result rows)
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"Data file not found: {file_path}")

        extension = file_path.suffix.lower()

        if extension not in self._handlers:
            raise ValueError(f"Unsupported file format: {extension}")

        self.logger.info(f"Loading data from {file_path} (format: {extension})")

        handler = self._handlers[extension]
        self._survey_rows, self._result_rows = handler(file_path)

        surveys = normalize_surveys(self._survey_rows)
        self.logger.info(f"Loaded {len(surveys)} surveys and {len(self._result_rows)} result rows")

        return surveys, list(self._result_rows)

    def load_from_database(self, connection_string: str) -> None:
        """Point subsequent listings at an SQL database."""
        self.close()
        self.connection_string = connection_string
        self.logger.info("Using database source for surveys and results")

    def list_surveys(self) -> List[Survey]:
        """List survey schemas; an empty list when the fetch fails."""
        try:
            if self.connection_string:
                rows = self._query(self.SURVEYS_QUERY)
            else:
                rows = self._survey_rows
            return normalize_surveys(rows)
        except Exception as e:
            self.logger.error(f"Failed to list surveys: {e}")
            return []

    def list_results(self, survey_id: Any) -> List[RawResponseRow]:
        """List raw result rows for a survey; an empty list when the fetch fails."""
        try:
            if self.connection_string:
                return self._query(self.RESULTS_QUERY, {'survey_id': as_text(survey_id)})
            return [row for row in self._result_rows
                    if ids_match(row.get('survey_id', row.get('surveyId')), survey_id)]
        except Exception as e:
            self.logger.error(f"Failed to list results for survey {survey_id}: {e}")
            return []

    def response_counts(self, survey_ids: List[Any]) -> Dict[str, int]:
        """Number of stored result rows per survey id."""
        if self.connection_string:
            return {as_text(sid): len(self.list_results(sid)) for sid in survey_ids}

        counts = Counter(as_text(row.get('survey_id', row.get('surveyId')))
                         for row in self._result_rows)
        return {as_text(sid): counts.get(as_text(sid), 0) for sid in survey_ids}

    def close(self) -> None:
        """Release pooled database connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @property
    def engine(self) -> sqlalchemy.engine.Engine:
        """Engine for the configured database, created on first use."""
        if self._engine is None:
            self._engine = sqlalchemy.create_engine(self.connection_string)
        return self._engine

    def _query(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self.engine.connect() as connection:
            data = pd.read_sql(sqlalchemy.text(query), connection, params=params)
        return self._frame_to_rows(data)

    def _load_json(self, file_path: Path) -> Tuple[List[RawSurveyRow], List[RawResponseRow]]:
        """Load a JSON dump of surveys and results."""
        with open(file_path, 'r', encoding=self.encoding) as f:
            json_data = json.load(f)

        if isinstance(json_data, dict):
            surveys = json_data.get('surveys') or []
            results = json_data.get('results') or []
            return list(surveys), list(results)
        elif isinstance(json_data, list):
            # Array of result rows
            return [], list(json_data)
        else:
            raise ValueError("Unsupported JSON structure")

    def _load_csv(self, file_path: Path) -> Tuple[List[RawSurveyRow], List[RawResponseRow]]:
        """Load a CSV/TSV export of the results table."""
        sep = '\t' if file_path.suffix.lower() == '.tsv' else ','
        data = pd.read_csv(file_path, sep=sep, encoding=self.encoding,
                           dtype=str, keep_default_na=False)
        return [], self._frame_to_rows(data)

    @staticmethod
    def _frame_to_rows(data: pd.DataFrame) -> List[Dict[str, Any]]:
        """Convert a frame into row dicts with missing cells as None."""
        data = data.astype(object).where(pd.notna(data), None)
        return data.to_dict(orient='records')
