"""CLI entry point for wpdetect."""

import asyncio
import dataclasses
import logging
from pathlib import Path

import click

from .checker import check_domains
from .settings import DEFAULT_CHECK_CONFIG, load_check_config
from .storage import results_to_json, save_results_csv


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--max_concurrency", "--max-concurrency", "max_concurrency",
    type=click.IntRange(min=1), default=None,
    help=f"Maximum number of domains checked at once (default {DEFAULT_CHECK_CONFIG.max_concurrency}).",
)
@click.option(
    "--timeout", "timeout",
    type=click.IntRange(min=1), default=None,
    help=f"Request timeout in seconds (default {DEFAULT_CHECK_CONFIG.request_timeout_s}).",
)
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="YAML config file (default: check_config.yaml in the working directory).")
@click.option("--proxies", "proxies_path", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Proxy CSV used when a site answers with the block status.")
@click.option("--csv", "csv_name", default=None, help="Also save results to <results_dir>/<NAME>.csv.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging on stderr.")
@click.argument("domains", nargs=-1)
@click.pass_context
def main(
    ctx: click.Context,
    max_concurrency: int | None,
    timeout: int | None,
    config_path: Path | None,
    proxies_path: Path | None,
    csv_name: str | None,
    verbose: bool,
    domains: tuple[str, ...],
) -> None:
    """Check whether DOMAINS run WordPress and print the results as JSON."""
    if not domains:
        click.echo(ctx.get_usage())
        return

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_check_config(config_path) if config_path else DEFAULT_CHECK_CONFIG
    overrides = {}
    if max_concurrency is not None:
        overrides["max_concurrency"] = max_concurrency
    if timeout is not None:
        overrides["request_timeout_s"] = timeout
    if proxies_path is not None:
        overrides["proxies_path"] = str(proxies_path.resolve())
    config = dataclasses.replace(config, **overrides)

    results = asyncio.run(check_domains(domains, config))

    click.echo(results_to_json(results))
    if csv_name:
        save_results_csv(results, csv_name, config)


if __name__ == "__main__":
    main()
