"""Schema validation and reporting for canonical output."""

from ats_pipeline.validation.reporters import build_quality_report, save_report
from ats_pipeline.validation.schemas import TABLE_SCHEMAS, validate_frames
