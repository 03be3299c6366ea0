import json
import logging
from pathlib import Path

import pandas as pd

from .results import DomainResult
from .settings import CheckConfig, DEFAULT_CHECK_CONFIG

logger = logging.getLogger(__name__)


def results_to_json(results: list[DomainResult]) -> str:
    """The JSON array printed on stdout, empty optional fields omitted."""
    return json.dumps([r.to_dict() for r in results], ensure_ascii=False, indent=2)


def results_to_df(results: list[DomainResult]) -> pd.DataFrame:
    """
    Flatten results into one row per domain. List columns are joined with
    "; " so the frame stays CSV friendly.
    """
    rows = []
    for r in results:
        row = r.to_dict()
        row["wordpress_plugins"] = "; ".join(r.wordpress_plugins)
        row["errors"] = "; ".join(r.errors)
        rows.append(row)
    columns = list(DomainResult.__dataclass_fields__)
    return pd.DataFrame(rows, columns=columns)


def save_results_csv(results: list[DomainResult], name: str, config: CheckConfig | None = None) -> Path | None:
    """
    Persist results as CSV under <results_dir>/<name>.csv.

    This intentionally keeps the storage layer minimal, but centralizes
    the filesystem layout so it can be replaced later.
    """
    cfg = config or DEFAULT_CHECK_CONFIG
    df = results_to_df(results)
    if df.empty:
        return None

    results_dir = cfg.resolve_path(cfg.results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    out_path = results_dir / f"{name}.csv"
    df.to_csv(out_path, index=False)
    logger.info("Saved %s", out_path)
    return out_path
