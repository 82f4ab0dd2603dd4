"""Row validation for the ingestion boundary."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

import polars as pl
from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class RejectedRow:
    """A source row that could not become a canonical record."""

    row_index: int
    reason: str


@dataclass
class IngestionResult(Generic[ModelT]):
    """Canonical records plus the rows that were dropped on the way in."""

    records: list[ModelT] = field(default_factory=list)
    rejected: list[RejectedRow] = field(default_factory=list)


def format_validation_errors(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "row"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_rows(df: pl.DataFrame, model: type[ModelT]) -> IngestionResult[ModelT]:
    """Validate each row against a Pydantic model.

    Unlike a strict pipeline, invalid rows are collected and skipped rather
    than failing the whole batch.

    Args:
        df: Cleaned DataFrame using internal column names
        model: Canonical record model

    Returns:
        IngestionResult with valid records and rejected row reasons
    """
    result: IngestionResult[ModelT] = IngestionResult()
    rows: list[dict[str, Any]] = df.to_dicts()

    for i, row in enumerate(rows):
        try:
            result.records.append(model.model_validate(row))
        except ValidationError as e:
            result.rejected.append(RejectedRow(row_index=i, reason=format_validation_errors(e)))

    return result
