#!/usr/bin/env python3
"""
Netstore Client CLI

Command-line interface for downloading file fragments from a netstore
server.

Usage:
    netstore-client HOST [PORT]                              # Interactive
    netstore-client HOST --file-id 1 --start 0 --end 1024    # Scripted
"""

import asyncio
import functools
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.logging import RichHandler
from rich.markup import escape

from .config import load_config
from .exceptions import NetstoreError
from .file.storage import FragmentStorage
from .session import UserCommand, run_session
from .transfer.listing import FileListing, format_listing

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level: str = 'INFO'):
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)]
    )


def build_listing_table(listing: FileListing) -> Table:
    """Render the server's files with their ids."""
    table = Table(title="Server Files")
    table.add_column("ID", justify="right", style="yellow")
    table.add_column("Name", style="cyan")

    for file_id, name in enumerate(listing):
        table.add_row(str(file_id), escape(name))

    return table


def show_listing(listing: FileListing, plain: bool = False):
    if plain:
        for line in format_listing(listing):
            click.echo(line)
    elif not listing:
        console.print("[yellow]The server offers no files[/yellow]")
    else:
        console.print(build_listing_table(listing))


def prompt_command(listing: FileListing, plain: bool = False) -> UserCommand:
    """Show the listing and ask which file and range to download."""
    show_listing(listing, plain)
    file_id = click.prompt('File id', type=int)
    start_addr = click.prompt('Start address', type=int)
    end_addr = click.prompt('End address', type=int)
    return UserCommand(file_id=file_id, start_addr=start_addr, end_addr=end_addr)


def fixed_command(command: UserCommand, plain: bool = False):
    """Selection callback for a command given on the command line."""
    def choose(listing: FileListing) -> UserCommand:
        show_listing(listing, plain)
        return command
    return choose


@click.command()
@click.argument('host', required=False)
@click.argument('port', type=click.IntRange(1, 65535), required=False)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--plain', is_flag=True, help='List files as plain "id.name" lines')
@click.option('-c', '--config', 'config_path', type=click.Path(path_type=Path),
              help='JSON config file')
@click.option('-d', '--download-dir', type=click.Path(path_type=Path),
              help='Directory for downloaded fragments')
@click.option('--chunk-size', type=click.IntRange(min=1),
              help='Largest single read of the fragment body (bytes)')
@click.option('--connect-timeout', type=click.FloatRange(min=0, min_open=True),
              help='Seconds to wait for the connection')
@click.option('--file-id', type=int, help='File id to download (skips the prompt)')
@click.option('--start', 'start_addr', type=int, help='First byte of the fragment')
@click.option('--end', 'end_addr', type=int, help='Byte after the last one of the fragment')
def main(host: Optional[str], port: Optional[int], verbose: bool, plain: bool,
         config_path: Optional[Path], download_dir: Optional[Path],
         chunk_size: Optional[int], connect_timeout: Optional[float],
         file_id: Optional[int], start_addr: Optional[int],
         end_addr: Optional[int]):
    """Netstore client - list a server's files and download a fragment of one."""
    config = load_config(config_path)

    # Command-line options take precedence
    if host:
        config.host = host
    if port:
        config.port = port
    if download_dir:
        config.download_dir = download_dir
    if chunk_size:
        config.chunk_size = chunk_size
    if connect_timeout:
        config.connect_timeout = connect_timeout

    if not config.host:
        raise click.UsageError("Missing argument 'HOST'.")

    selection = (file_id, start_addr, end_addr)
    if any(v is not None for v in selection) and any(v is None for v in selection):
        raise click.UsageError("--file-id, --start and --end must be given together.")

    setup_logging(verbose, config.log_level)

    if file_id is None:
        choose = functools.partial(prompt_command, plain=plain)
    else:
        choose = fixed_command(UserCommand(file_id, start_addr, end_addr), plain)

    storage = FragmentStorage(config.download_dir)

    try:
        outcome = asyncio.run(run_session(
            config.host,
            choose,
            storage,
            port=config.port,
            chunk_size=config.chunk_size,
            connect_timeout=config.connect_timeout,
        ))
    except (NetstoreError, OSError) as e:
        logger.debug("Session failed", exc_info=True)
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    if outcome.refused:
        console.print(outcome.refusal.message)
        return

    fragment = outcome.fragment
    byte_range = escape(f"[{fragment.start:,}, {fragment.end:,})")
    status = "[yellow]Truncated[/yellow]" if fragment.truncated else "[green]Complete[/green]"
    console.print(Panel.fit(
        f"[bold green]Fragment Downloaded[/bold green]\n\n"
        f"File: [cyan]{escape(fragment.name)}[/cyan]\n"
        f"Range: [yellow]{byte_range}[/yellow]\n"
        f"Received: [yellow]{fragment.received_length:,} of "
        f"{fragment.declared_length:,} bytes[/yellow] {status}\n"
        f"Saved to: [blue]{escape(str(fragment.path))}[/blue]",
        title="Download"
    ))


if __name__ == '__main__':
    main()
