"""Command line interface for docuploader."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import ImportProgressDisplay, render_configuration_summary
from .errors import CLIError, ConfigurationError
from .models import UploadOrder, UploadSettings
from .orchestrator import DocumentImporter
from .services import (
    ClientFactory,
    ClientSettings,
    DocumentRepository,
    IdPools,
    get_properties_provider,
)

DEFAULT_DOCUMENT_TYPE = "cash-report"

_DURATION_RE = re.compile(r"^(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2}):(?P<seconds>\d{1,2}(?:\.\d+)?)$")


def parse_duration(value: str) -> float:
    """
    Parse a duration into seconds.

    Accepts plain seconds (``"1.5"``) or ``[d.]hh:mm:ss[.fff]``.
    """
    text = str(value).strip()
    try:
        seconds = float(text)
    except ValueError:
        match = _DURATION_RE.match(text)
        if not match:
            raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
        seconds = (
            int(match.group("days") or 0) * 86400
            + int(match.group("hours")) * 3600
            + int(match.group("minutes")) * 60
            + float(match.group("seconds"))
        )
    if seconds < 0:
        raise argparse.ArgumentTypeError(f"duration must not be negative: {value!r}")
    return seconds


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided
    (or LOG_LEVEL is set). Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=True,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def build_upload_settings(args: argparse.Namespace) -> UploadSettings:
    """UploadSettings from parsed arguments. Raises ConfigurationError."""
    return UploadSettings(
        agent_start_timeout=args.agent_start_timeout,
        upload_order=UploadOrder.parse(args.upload_order),
        portion_size=args.portion_size,
        upload_portions_interval=args.upload_portions_interval,
        upload_interval=args.upload_interval,
        trace_enabled=args.trace,
        batch_size=args.batch_size,
    )


def build_client_settings(args: argparse.Namespace, upload_settings: UploadSettings) -> ClientSettings:
    """
    ClientSettings from arguments, falling back to DOCUPLOADER_* variables.

    Only discrete mode needs created entities back from the store.
    """
    settings = ClientSettings.from_env(
        service_url=args.service,
        username=args.username,
        password=args.password,
        need_return_result=not upload_settings.is_batch_mode,
    )
    if not settings.service_url:
        raise CLIError("store service URL is not set (use --service or DOCUPLOADER_SERVICE_URL)")
    return settings


async def _run_import(
    path: str,
    upload_settings: UploadSettings,
    client_settings: ClientSettings,
    document_type: str,
) -> int:
    pools = IdPools.from_env()
    provider = get_properties_provider(document_type, pools)

    importer = DocumentImporter(
        ClientFactory(client_settings),
        lambda client: DocumentRepository(client, provider, pools.applications),
    )

    display = ImportProgressDisplay(trace=upload_settings.trace_enabled)
    process = importer.start_import(path, upload_settings)
    process.on_agent_start(display.on_agent_start)
    process.on_agent_complete(display.on_agent_complete)
    process.on_unit_complete(display.on_unit_complete)
    process.on_unit_fail(display.on_unit_fail)
    process.on_error(display.on_error)

    result = await process.wait()
    display.on_finish(result)
    return 0 if result.success else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docuploader",
        description="Import documents from a folder tree into the document store.",
    )
    parser.add_argument("path", nargs="?", help="Full path to the folder with documents to import")
    parser.add_argument("-s", "--service", default=None, help="Store service URL (default from DOCUPLOADER_SERVICE_URL)")
    parser.add_argument("-u", "--username", default=None, help="Store user name (default from DOCUPLOADER_USERNAME)")
    parser.add_argument("-p", "--password", default=None, help="Store password (default from DOCUPLOADER_PASSWORD)")
    parser.add_argument(
        "--agent-start-timeout",
        type=parse_duration,
        default=0.0,
        help="Time within which all agents start, seconds or hh:mm:ss (default 0)",
    )
    parser.add_argument(
        "--portion-size",
        type=int,
        default=-1,
        help="Documents per portion (default: all documents of a subfolder)",
    )
    parser.add_argument(
        "--upload-portions-interval",
        type=parse_duration,
        default=0.0,
        help="Time between portion starts within an agent (default 0)",
    )
    parser.add_argument(
        "--upload-interval",
        type=parse_duration,
        default=0.0,
        help="Time between documents in a portion, sequential order only (default 0)",
    )
    parser.add_argument(
        "--upload-order",
        choices=["Sequential", "Parallel", "sequential", "parallel"],
        default="Sequential",
        help="Order of document uploading in a portion (default Sequential)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=1,
        help="Documents per batch, no more than portion size; 0 for discrete mode (default 1)",
    )
    parser.add_argument(
        "--trace",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Log every imported document",
    )
    parser.add_argument(
        "-t",
        "--document-type",
        default=DEFAULT_DOCUMENT_TYPE,
        help=f"Kind of documents to create: document or cash-report (default {DEFAULT_DOCUMENT_TYPE})",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument("--version", action="version", version="docuploader 0.1.0")
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.path is None:
        parser.print_help()
        return 0

    try:
        upload_settings = build_upload_settings(args)
        client_settings = build_client_settings(args, upload_settings)
    except (ConfigurationError, CLIError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Path": args.path,
            "Service": client_settings.service_url,
            "User": client_settings.username or "-",
            "Document Type": args.document_type,
            "Upload Order": upload_settings.upload_order.name.capitalize(),
            "Portion Size": upload_settings.portion_size if upload_settings.is_portioned else "all",
            "Batch Size": upload_settings.batch_size if upload_settings.is_batch_mode else "discrete",
            "Agent Start Timeout": f"{upload_settings.agent_start_timeout:g}s",
            "Portions Interval": f"{upload_settings.upload_portions_interval:g}s",
            "Upload Interval": f"{upload_settings.upload_interval:g}s",
            "Trace": "yes" if upload_settings.trace_enabled else "no",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_import(
                path=args.path,
                upload_settings=upload_settings,
                client_settings=client_settings,
                document_type=args.document_type,
            )
        )
    except (ConfigurationError, CLIError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
