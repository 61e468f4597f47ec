"""
velacap CLI Main Entry Point

Provides command-line interface for capability discovery.
"""

import click

from velacap import __version__
from velacap.cli.capability import list_cmd, show_cmd, sync_cmd
from velacap.logging import LoggingSettings, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="velacap")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cli(verbose: bool):
    """
    velacap - Capability discovery for OAM definitions

    Resolve component and trait definitions in a cluster into capabilities
    with their templates and parameter schemas.
    """
    if verbose:
        setup_logging(LoggingSettings(level="DEBUG"), force=True)
    else:
        setup_logging()


cli.add_command(list_cmd)
cli.add_command(show_cmd)
cli.add_command(sync_cmd)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
