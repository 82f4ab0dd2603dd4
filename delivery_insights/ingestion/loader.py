"""Normalization of raw rows into canonical records."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import polars as pl

from ..config.settings import load_schema_registry
from ..exceptions import ColumnMappingError
from ..logging import get_logger
from ..models.records import ContractTerms, DeliveryRecord
from .cleaner import apply_cleaning
from .validator import IngestionResult, validate_rows

RawRows = Sequence[Mapping[str, Any]] | pl.DataFrame


class RawRowNormalizer:
    """Boundary that turns loosely-typed rows into canonical records.

    Source rows may use platform column names ("DATE", "CAMPAIGN ORDER NAME")
    or internal names ("date", "campaign_name"). After normalization the core
    only ever sees ``DeliveryRecord`` and ``ContractTerms``.

    Usage:
        normalizer = RawRowNormalizer()
        result = normalizer.normalize_delivery(rows)
        records = result.records
    """

    def __init__(self, schema_path: Path | None = None, log=None):
        self.schema = load_schema_registry(schema_path)
        self.log = log or get_logger("ingestion")

    def normalize_delivery(self, rows: RawRows) -> IngestionResult[DeliveryRecord]:
        """Rename -> Clean -> Validate delivery rows.

        Missing or unparseable metrics default to 0; rows with an invalid
        date or campaign name are rejected.
        """
        return self._normalize(rows, "delivery", DeliveryRecord, numeric_default=0.0)

    def normalize_contract_terms(self, rows: RawRows) -> IngestionResult[ContractTerms]:
        """Rename -> Clean -> Validate contract terms rows."""
        return self._normalize(rows, "contract_terms", ContractTerms, numeric_default=None)

    def _normalize(
        self,
        rows: RawRows,
        schema_name: str,
        model: type,
        numeric_default: float | None,
    ) -> IngestionResult:
        schema = self.schema[schema_name]

        df = self._to_frame(rows)
        if len(df) == 0:
            return IngestionResult()

        df = self._rename_columns(df, schema["column_map"], schema.get("required_columns", []))
        df = apply_cleaning(
            df,
            currency_cols=schema.get("currency_columns", []),
            date_cols=schema.get("date_columns", []),
            float_cols=schema.get("float_columns", []),
            string_cols=["campaign_name"],
            numeric_default=numeric_default,
        )

        result = validate_rows(df, model)
        for rejected in result.rejected:
            self.log.debug(
                "Rejected {} row {}: {}", schema_name, rejected.row_index, rejected.reason
            )
        self.log.info(
            "Normalized {} {} rows ({} rejected)",
            len(result.records),
            schema_name,
            len(result.rejected),
        )
        return result

    def _to_frame(self, rows: RawRows) -> pl.DataFrame:
        """Build an all-string DataFrame so mixed-type columns never fail inference."""
        if isinstance(rows, pl.DataFrame):
            return rows.select(pl.all().cast(pl.Utf8))

        columns = list(dict.fromkeys(key for row in rows for key in row))
        data = {
            col: [None if row.get(col) is None else str(row.get(col)) for row in rows]
            for col in columns
        }
        return pl.DataFrame(data, schema={col: pl.Utf8 for col in columns})

    def _rename_columns(
        self,
        df: pl.DataFrame,
        column_map: dict[str, str],
        required: list[str],
    ) -> pl.DataFrame:
        """Rename columns from raw names to internal names.

        column_map: {internal_name: raw_column_name}
        """
        available = set(df.columns)

        # Internal names already present win over their raw aliases
        rename_dict = {
            raw: internal
            for internal, raw in column_map.items()
            if internal not in available and raw in available
        }
        df = df.rename(rename_dict)

        missing = [col for col in required if col not in df.columns]
        if missing:
            raise ColumnMappingError(
                [column_map.get(col, col) for col in missing], sorted(available)
            )

        return df
