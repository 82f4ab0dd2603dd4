"""Data cleaning functions using Polars expressions."""

import polars as pl

# ISO, M/D/YYYY, D-M-YYYY, D.M.YYYY; first match wins
DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%d-%m-%Y", "%d.%m.%Y"]


def clean_currency_column(col_name: str, default: float | None = None) -> pl.Expr:
    """Remove commas and currency symbols, convert to float.

    Unparseable values become null, or ``default`` when one is given.
    """
    expr = (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.replace_all(",", "", literal=True)
        .str.replace_all("$", "", literal=True)
        .str.strip_chars()
        .cast(pl.Float64, strict=False)
    )
    if default is not None:
        expr = expr.fill_null(default)
    return expr.alias(col_name)


def clean_float_column(col_name: str, default: float | None = None) -> pl.Expr:
    """Convert to float, handling commas and string representation."""
    expr = (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.replace_all(",", "", literal=True)
        .str.strip_chars()
        .cast(pl.Float64, strict=False)
    )
    if default is not None:
        expr = expr.fill_null(default)
    return expr.alias(col_name)


def clean_date_column(col_name: str) -> pl.Expr:
    """Convert to date, accepting the same formats as ``parse_date``.

    Sentinel rows ("Totals") and unparseable strings become null.
    """
    text = (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.strip_chars()
        # Drop a trailing time part ("2024-01-05 00:00:00", "1/5/24 13:00")
        .str.replace(r"[ T].*$", "")
        # Two-digit years are 20xx
        .str.replace(r"^(\d{1,2})/(\d{1,2})/(\d{2})$", "${1}/${2}/20${3}")
    )
    return pl.coalesce(
        [text.str.to_date(fmt, strict=False) for fmt in DATE_FORMATS]
    ).alias(col_name)


def clean_string_column(col_name: str) -> pl.Expr:
    """Strip whitespace and normalize empty strings to null."""
    stripped = pl.col(col_name).cast(pl.Utf8).str.strip_chars()
    return pl.when(stripped == "").then(None).otherwise(stripped).alias(col_name)


def apply_cleaning(
    df: pl.DataFrame,
    currency_cols: list[str],
    date_cols: list[str],
    float_cols: list[str] | None = None,
    string_cols: list[str] | None = None,
    numeric_default: float | None = None,
) -> pl.DataFrame:
    """Apply all cleaning transformations to DataFrame.

    Numeric columns missing from the DataFrame are added with
    ``numeric_default`` when one is given; other missing columns are skipped.
    """
    existing_cols = set(df.columns)
    exprs: list[pl.Expr] = []

    for col in [*currency_cols, *(float_cols or [])]:
        if col not in existing_cols and numeric_default is not None:
            exprs.append(pl.lit(numeric_default, dtype=pl.Float64).alias(col))

    for col in currency_cols:
        if col in existing_cols:
            exprs.append(clean_currency_column(col, numeric_default))

    for col in float_cols or []:
        if col in existing_cols:
            exprs.append(clean_float_column(col, numeric_default))

    for col in date_cols:
        if col in existing_cols:
            exprs.append(clean_date_column(col))

    for col in string_cols or []:
        if col in existing_cols:
            exprs.append(clean_string_column(col))

    if exprs:
        return df.with_columns(exprs)
    return df
