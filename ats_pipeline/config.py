"""Pipeline configuration and per-run ingestion options."""

import tomllib
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import yaml

type ConfigDict = dict[str, str | int | bool | list[str] | None]

PROJECT_ROOT = Path(__file__).parent.parent
OUTPUT_FORMATS = ("csv", "json", "parquet")


@dataclass(frozen=True)
class IngestionOptions:
    """Options for a single ingestion call.

    ``ingested_at`` pins the clock stamped into every source trace; leave it
    unset to use the current time.
    """

    max_rows: int | None = None
    ingested_at: datetime | None = None


@dataclass(frozen=True)
class PipelineConfig:
    max_rows: int | None
    output_dir: Path
    output_format: str
    log_level: str
    invariant_tolerance_days: int

    def ingestion_options(self) -> IngestionOptions:
        return IngestionOptions(max_rows=self.max_rows)


def get_env_config(pyproject: Path | None = None) -> ConfigDict:
    """Read pipeline config from the ``[tool.ats_pipeline]`` table of pyproject.toml."""
    pyproject = pyproject or PROJECT_ROOT / "pyproject.toml"
    if not pyproject.exists():
        return {}
    with open(pyproject, "rb") as f:
        data = tomllib.load(f)
    return data.get("tool", {}).get("ats_pipeline", {})


def load_pipeline_config(path: Path | None = None) -> PipelineConfig:
    """Build the pipeline config from ``pipeline.yaml`` if present, else pyproject.toml."""
    config_path = path or PROJECT_ROOT / "pipeline.yaml"
    if config_path.exists():
        with open(config_path) as f:
            raw: ConfigDict = yaml.safe_load(f) or {}
    else:
        raw = get_env_config()

    output_format = str(raw.get("output_format", "csv"))
    match output_format:
        case "csv" | "json" | "parquet":
            pass
        case other:
            raise ValueError(f"Unsupported output format: {other}")

    max_rows = raw.get("max_rows")
    return PipelineConfig(
        max_rows=int(max_rows) if max_rows is not None else None,
        output_dir=Path(str(raw.get("output_dir", "output/canonical"))),
        output_format=output_format,
        log_level=str(raw.get("log_level", "INFO")).upper(),
        invariant_tolerance_days=int(raw.get("invariant_tolerance_days", 1)),
    )
