from pathlib import Path

import click

from pterobackup.config import ServerType, load_config
from pterobackup.errors import BackupError
from pterobackup.log import LogConfig, configure_logging
from pterobackup.pipeline import run_backup

SERVER_CHOICES = [t.value for t in ServerType]


@click.command()
@click.argument("server", type=click.Choice(SERVER_CHOICES, case_sensitive=False))
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v warn, -vv info, -vvv debug).")
@click.option(
    "-e", "--exclude",
    default=None,
    help="Skip every path containing this text (plain substring match).",
)
@click.option(
    "-c", "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: PTEROBACKUP_CONFIG or ./config.json).",
)
@click.option("--no-progress", is_flag=True, help="Do not draw the upload progress bar.")
@click.version_option(package_name="pterobackup")
def cli(server: str, verbose: int, exclude: str | None, config_file: Path | None, no_progress: bool):
    """Back up a game server volume to a Google Cloud Storage bucket.

    SERVER is smp (survival) or cmp (creative).
    """
    configure_logging(LogConfig.from_verbosity(verbose))
    server_type = ServerType(server.lower())

    try:
        config = load_config(config_file)
        result = run_backup(config, server_type, exclude=exclude, show_progress=not no_progress)
    except BackupError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    size_mb = result.size_bytes / (1024 * 1024)
    click.echo(f"Uploaded {result.object_name} ({size_mb:.1f} MB) to gs://{config.bucket_name}")
