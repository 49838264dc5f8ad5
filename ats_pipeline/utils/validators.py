"""Table checks run before canonical output is written."""

import pandas as pd
import pandera as pa
from pandera import DataFrameSchema

type ValidationResult = dict[str, str | bool | list[str]]


def _outcome(errors: list[str]) -> ValidationResult:
    return {"valid": not errors, "status": "error" if errors else "ok", "errors": errors}


def _describe(failure: dict) -> str:
    match failure:
        case {"column": None, "check": check, "failure_case": value}:
            return f"table: {value!r} fails {check}"
        case {"column": column, "check": check, "failure_case": value, "index": index}:
            return f"{column}: {value!r} fails {check} (row {index})"
        case {"column": column, "check": check}:
            return f"{column}: fails {check}"
        case _:
            return f"unrecognized failure: {failure}"


def validate_dataframe(df: pd.DataFrame, schema: DataFrameSchema) -> ValidationResult:
    """Run ``schema`` lazily and report one line per failing cell or check."""
    try:
        schema.validate(df, lazy=True)
    except pa.errors.SchemaErrors as exc:
        failures = exc.failure_cases.to_dict(orient="records")
        return _outcome([_describe(f) for f in failures])
    return _outcome([])


def validate_required_values(df: pd.DataFrame, columns: list[str]) -> ValidationResult:
    """Every row must carry a non-blank value in each of ``columns``."""
    errors = []
    for column in columns:
        if column not in df.columns:
            errors.append(f"{column}: column not present")
            continue
        values = df[column]
        blank = values.isna() | values.astype(str).str.strip().eq("")
        if blank.any():
            errors.append(f"{column}: {int(blank.sum())} of {len(df)} rows lack a value")
    return _outcome(errors)
