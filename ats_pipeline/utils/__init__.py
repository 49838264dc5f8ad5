"""Shared utilities for the canonical ATS pipeline."""

from ats_pipeline.utils.io import CsvDocument, read_ats_export, tokenize_csv, write_output
from ats_pipeline.utils.validators import validate_dataframe, validate_required_values
