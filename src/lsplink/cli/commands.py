"""
CLI commands for lsplink.

Main entry point: `lsplink probe -- clangd` or `lsplink request textDocument/hover -- clangd`
"""

import json
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
from dotenv import load_dotenv

from lsplink.cli import ui
from lsplink.config import Config
from lsplink.lsp.client import LSPClient
from lsplink.lsp.config import get_lsp_config, language_id_for_file
from lsplink.lsp.protocol import Position, TextDocumentIdentifier, TextDocumentPositionParams
from lsplink.utils.logger import logger


@click.group()
@click.option(
    "--log-dir",
    default=None,
    help="Write per-level log files to this directory",
)
@click.option(
    "--log-level",
    default=None,
    help="Minimum level for log files (DEBUG, INFO, WARNING, ERROR)",
)
@click.pass_context
def main(ctx, log_dir: Optional[str], log_level: Optional[str]):
    """
    lsplink - talk to a language server from the terminal

    Usage:
        lsplink servers                                   # List presets
        lsplink probe -- clangd                           # Start and handshake
        lsplink probe --open main.cpp -- clangd           # Show diagnostics
        lsplink request textDocument/hover --open main.cpp --line 3 --character 5 -- clangd
    """
    # Load environment variables
    load_dotenv()

    config = Config.from_env()
    log_dir = log_dir or config.log_dir
    if log_dir:
        logger.configure(level=log_level or config.log_level, log_dir=log_dir)

    ctx.obj = config


@main.command()
def servers():
    """List configured language servers"""
    lsp_config = get_lsp_config()
    ui.show_servers(lsp_config.list_all_servers(), lsp_config.list_available_servers())


@main.command()
@click.argument("command", nargs=-1)
@click.option("--server", "-s", default=None, help="Use a configured server (e.g. 'cpp', 'python')")
@click.option("--root", default=None, help="Workspace root directory (defaults to cwd)")
@click.option("--open", "open_file", default=None, help="File to open after the handshake")
@click.option("--language", default=None, help="languageId for the opened file")
@click.option("--wait", default=2.0, type=float, help="Seconds to wait for diagnostics")
@click.option("--verbose/--quiet", default=False, help="Echo server log output")
@click.pass_obj
def probe(
    config: Config,
    command: Tuple[str, ...],
    server: Optional[str],
    root: Optional[str],
    open_file: Optional[str],
    language: Optional[str],
    wait: float,
    verbose: bool,
):
    """Start a server, complete the handshake and show published diagnostics"""
    argv = _resolve_command(command, server)
    client = _make_client(config, verbose)

    diagnostics: Dict[str, List] = {}
    received = threading.Event()

    def on_diagnostics(uri: str, items: list):
        diagnostics[uri] = items
        received.set()

    client.on_diagnostics(on_diagnostics)

    try:
        if not _start(client, config, argv, root):
            sys.exit(1)
        ui.print_success(f"Ready: {' '.join(argv)} (pid {client.pid})")

        if open_file:
            _open_document(client, open_file, language)

        received.wait(wait)
        ui.show_diagnostics(diagnostics)

    except KeyboardInterrupt:
        ui.print_warning("Interrupted by user")
        sys.exit(130)

    finally:
        client.stop()


@main.command()
@click.argument("method")
@click.argument("command", nargs=-1)
@click.option("--server", "-s", default=None, help="Use a configured server (e.g. 'cpp', 'python')")
@click.option("--root", default=None, help="Workspace root directory (defaults to cwd)")
@click.option("--params", default=None, help="Request params as JSON")
@click.option("--open", "open_file", default=None, help="File to open before the request")
@click.option("--language", default=None, help="languageId for the opened file")
@click.option("--line", default=0, type=int, help="0-indexed line for position requests")
@click.option("--character", default=0, type=int, help="0-indexed character for position requests")
@click.option("--timeout", default=None, type=float, help="Seconds to wait for the response")
@click.option("--verbose/--quiet", default=False, help="Echo server log output")
@click.pass_obj
def request(
    config: Config,
    method: str,
    command: Tuple[str, ...],
    server: Optional[str],
    root: Optional[str],
    params: Optional[str],
    open_file: Optional[str],
    language: Optional[str],
    line: int,
    character: int,
    timeout: Optional[float],
    verbose: bool,
):
    """Send one request to a server and print the result"""
    argv = _resolve_command(command, server)

    if params is not None:
        try:
            request_params = json.loads(params)
        except ValueError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="--params")
    elif open_file:
        request_params = TextDocumentPositionParams(
            text_document=TextDocumentIdentifier(uri=_file_uri(open_file)),
            position=Position(line=line, character=character),
        ).to_dict()
    else:
        request_params = None

    client = _make_client(config, verbose)

    try:
        if not _start(client, config, argv, root):
            sys.exit(1)

        if open_file:
            _open_document(client, open_file, language)

        result, error = client.request_sync(method, request_params, timeout=timeout)
        if error is not None:
            ui.print_error(f"{method} failed ({error.get('code')}): {error.get('message')}")
            sys.exit(1)

        ui.show_result(result)

    except KeyboardInterrupt:
        ui.print_warning("Interrupted by user")
        sys.exit(130)

    finally:
        client.stop()


# --- Helpers ---


def _resolve_command(command: Tuple[str, ...], server: Optional[str]) -> List[str]:
    if command:
        return list(command)

    if server is None:
        raise click.UsageError("Give a server command after '--' or pick one with --server")

    lsp_config = get_lsp_config()
    server_config = lsp_config.get_server_for_language(server)
    if server_config is None:
        raise click.UsageError(
            f"No '{server}' language server available. {lsp_config.get_install_hint(server)}"
        )
    return server_config.argv


def _make_client(config: Config, verbose: bool) -> LSPClient:
    client = LSPClient(config=config)
    if verbose:
        client.on_log(ui.print_server_log)
    return client


def _start(client: LSPClient, config: Config, argv: List[str], root: Optional[str]) -> bool:
    root_uri = Path(root or Path.cwd()).resolve().as_uri()

    if not client.start(argv[0], argv[1:], root_uri):
        ui.print_error(f"Could not start {argv[0]}")
        return False

    if not client.wait_until_ready(config.request_timeout):
        ui.print_error(f"{argv[0]} did not complete the initialize handshake")
        return False

    return True


def _open_document(client: LSPClient, file_path: str, language: Optional[str]):
    try:
        text = Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise click.FileError(file_path, hint=str(e))

    client.did_open(_file_uri(file_path), language or language_id_for_file(file_path), text)


def _file_uri(file_path: str) -> str:
    return Path(file_path).resolve().as_uri()


if __name__ == "__main__":
    main()
