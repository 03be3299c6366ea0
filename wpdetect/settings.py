import logging
from pathlib import Path
from dataclasses import dataclass, fields
import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_FILENAME = "check_config.yaml"

logger = logging.getLogger(__name__)

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


@dataclass
class CheckConfig:
    """
    Central configuration for a domain-check run.

    Values can be overridden via check_config.yaml in the working directory,
    and the CLI overrides concurrency and timeout on top of that.
    """

    # General
    user_agent: str = DESKTOP_USER_AGENT
    unknown_version: str = "Unknown"
    blank_screen_check: bool = True

    # Batch
    max_concurrency: int = 5

    # Network
    request_timeout_s: int = 10
    dns_timeout_s: float = 5.0

    # Proxy failover
    block_status: int = 403
    proxies_path: str = "proxies.csv"

    # Storage
    results_dir: str = "results"

    def resolve_path(self, value: str) -> Path:
        """Relative paths are resolved against the working directory."""
        p = Path(value)
        if not p.is_absolute():
            p = Path.cwd() / p
        return p


def load_check_config(path: str | Path | None = None) -> CheckConfig:
    """
    Load CheckConfig from YAML if present; otherwise use defaults.

    By default, looks for `check_config.yaml` in the working directory,
    then at the project root of a source checkout.
    """

    if path is None:
        path = Path.cwd() / CONFIG_FILENAME
        if not path.exists():
            path = PROJECT_ROOT / CONFIG_FILENAME

    path = Path(path)

    if not path.exists():
        logger.debug("YAML not found at %s, using defaults", path)
        return CheckConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        logger.warning("Expected mapping in %s, got %s, using defaults", path, type(data).__name__)
        return CheckConfig()

    allowed_keys = {f.name for f in fields(CheckConfig)}
    filtered = {k: v for k, v in data.items() if k in allowed_keys}
    ignored = sorted(set(data) - allowed_keys)
    if ignored:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(map(str, ignored)))

    return CheckConfig(**filtered)

DEFAULT_CHECK_CONFIG = load_check_config()
