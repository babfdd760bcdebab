import asyncio
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import LOG_LEVELS, AppConfig, clamp_refresh, load_config, parse_log_level, save_config
from .logging import configure_logging, get_logger
from .ui.app import TordeckApp


LOG = get_logger(__name__)


def _apply_overrides(
    config: AppConfig,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    download_dir: Optional[str],
    refresh: Optional[float],
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> AppConfig:
    if host:
        config.rpc.host = host
    if port is not None:
        config.rpc.port = port
    if user is not None:
        config.rpc.username = user
    if password is not None:
        config.rpc.password = password
    if download_dir:
        config.paths.download_dir = Path(download_dir).expanduser()
    if refresh is not None:
        config.ui.refresh_interval = clamp_refresh(refresh)
    if log_level:
        config.log.level = parse_log_level(log_level)
    if log_file:
        config.log.file = Path(log_file).expanduser()
    save_config(config)
    return config


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--host", default=None, help="Transmission RPC host (default: localhost)")
@click.option("--port", default=None, type=int, help="RPC port (default: 9091)")
@click.option("--user", default=None, help="RPC username")
@click.option("--password", default=None, help="RPC password")
@click.option("--download-dir", default=None, help="Default download directory")
@click.option("--refresh", default=None, type=float, help="Torrent list refresh interval in seconds")
@click.option("--log-level", default=None, type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Log level")
@click.option("--log-file", default=None, help="Write the debug log here")
@click.version_option(__version__, "-v", "--version", message="tordeck %(version)s")
def main(
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    download_dir: Optional[str],
    refresh: Optional[float],
    log_level: Optional[str],
    log_file: Optional[str],
):
    """Run tordeck TUI."""
    config = load_config()
    config = _apply_overrides(config, host, port, user, password, download_dir, refresh, log_level, log_file)
    configure_logging(config.log)
    LOG.info("Starting tordeck %s against %s:%s", __version__, config.rpc.host, config.rpc.port)
    config.paths.download_dir.mkdir(parents=True, exist_ok=True)

    app = TordeckApp(config=config)
    try:
        asyncio.run(app.run_async())
    except KeyboardInterrupt:
        LOG.info("Interrupted by user (Ctrl+C)")
    if app.return_code:
        LOG.error("Exited with code %s", app.return_code)
        sys.exit(app.return_code)


if __name__ == "__main__":
    main()
