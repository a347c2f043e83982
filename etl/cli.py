"""
Command-line entry point: one subcommand per entity family.

Usage:
    legis-etl materias 57 --limite 10 --destino local-filesystem
    legis-etl mesas --dry-run
    legis-etl discursos-deputados 57 --deputado 204554 --incremental
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from typing import Dict, List, Optional, Tuple, Type

import httpx
from pydantic import ValidationError as PydanticValidationError

from core.config import Settings, settings as default_settings
from core.logging import setup_logging
from etl.extractors.api_client import LegislativeApiClient
from etl.loaders.factory import create_store
from etl.processor import ETLProcessor
from etl.processors import DiscursosDeputadosProcessor, MateriasProcessor, MesasProcessor
from etl.processors.periods import current_legislature
from schemas.enums import Destination
from schemas.etl import ProcessingResult, RunOptions

logger = logging.getLogger(__name__)

# command -> (API family, processor class, takes a legislature)
COMMANDS: Dict[str, Tuple[str, Type[ETLProcessor], bool]] = {
    "materias": ("senado", MateriasProcessor, True),
    "mesas": ("senado", MesasProcessor, False),
    "discursos-deputados": ("camara", DiscursosDeputadosProcessor, True),
}


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--limite", type=int, help="Maximum number of legislators")
    common.add_argument("--dataInicio", "--data-inicio", dest="data_inicio", type=parse_date,
                        help="Start date (YYYY-MM-DD)")
    common.add_argument("--dataFim", "--data-fim", dest="data_fim", type=parse_date,
                        help="End date (YYYY-MM-DD)")
    common.add_argument("--destino", choices=[d.value for d in Destination],
                        default=Destination.PRIMARY_STORE.value, help="Where documents are written")
    common.add_argument("--concorrencia", type=int, default=default_settings.DEFAULT_CONCURRENCY,
                        help="Legislators processed concurrently per chunk")
    common.add_argument("--incremental", action="store_true", help="Only recent data")
    common.add_argument("--dry-run", action="store_true", help="Extract and transform without writing")
    common.add_argument("--partido", help="Party sigla filter")
    common.add_argument("--uf", help="State filter (two letters)")
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(
        prog="legis-etl",
        description="ETL for the Senado Federal and Camara dos Deputados open-data APIs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    materias = subparsers.add_parser("materias", parents=[common], help="Senators' bills")
    materias.add_argument("legislatura", type=int, nargs="?")
    materias.add_argument("--senador", dest="legislator_id", help="Single senator code")

    subparsers.add_parser("mesas", parents=[common], help="Senate and Congress boards")

    discursos = subparsers.add_parser("discursos-deputados", parents=[common], help="Deputies' speeches")
    discursos.add_argument("legislatura", type=int, nargs="?")
    discursos.add_argument("--deputado", dest="legislator_id", help="Single deputy id")

    return parser


def options_from_args(args: argparse.Namespace) -> RunOptions:
    _, _, takes_legislature = COMMANDS[args.command]
    legislatura = getattr(args, "legislatura", None)
    if takes_legislature and legislatura is None:
        legislatura = current_legislature()

    return RunOptions(
        legislatura=legislatura,
        legislator_id=getattr(args, "legislator_id", None),
        limite=args.limite,
        data_inicio=args.data_inicio,
        data_fim=args.data_fim,
        destino=Destination(args.destino),
        concorrencia=args.concorrencia,
        incremental=args.incremental,
        verbose=args.verbose,
        dry_run=args.dry_run,
        partido=args.partido,
        uf=args.uf,
    )


async def run_job(
    command: str,
    options: RunOptions,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    store=None,
) -> ProcessingResult:
    """Build the collaborators of one run and process it"""
    settings = settings or default_settings
    family, processor_class, _ = COMMANDS[command]

    owns_store = store is None and not options.dry_run
    if owns_store:
        store = create_store(options.destino, settings)

    try:
        async with LegislativeApiClient(settings.api_policy(family), transport=transport) as client:
            processor = processor_class(options, client=client, settings=settings, store=store)
            return await processor.process()
    finally:
        if owns_store:
            await store.close()


def format_summary(command: str, result: ProcessingResult) -> List[str]:
    lines = [
        "",
        f"{command}: {result.status.value.upper()}",
        f"  successes: {result.successes}",
        f"  failures:  {result.failures}",
        f"  warnings:  {result.warnings}",
        f"  elapsed:   {result.elapsed_seconds:.2f}s",
        f"  destination: {result.destination}",
    ]
    if result.legislatura is not None:
        lines.append(f"  legislature: {result.legislatura}")
    for error in result.errors:
        lines.append(f"  error: {error.get('message')}")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose)

    try:
        options = options_from_args(args)
    except PydanticValidationError as e:
        logger.error(f"Invalid options: {e}")
        return 1

    try:
        result = asyncio.run(run_job(args.command, options))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 1
    except Exception as e:
        logger.exception(f"Unhandled error: {e}")
        return 1

    print("\n".join(format_summary(args.command, result)))
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
