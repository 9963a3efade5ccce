import argparse
import threading
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import Settings
from .disambiguation import Disambiguator, TerminalPrompter
from .env import load_env
from .logger import LogChannel, get_logger
from .resolver import ResolverPool
from .scrapers.common import FetchClient
from .scrapers.lens import LensClient
from .scrapers.store import StoreClient
from .storage import HtmlWriter, InputError, load_games


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gamelinks",
        description="Find Epic Games Store links for exported games and write them to an HTML page",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-i", "--input", required=True, help="input JSON: exported games file path")
    parser.add_argument("-o", "--output", required=True, help="output HTML: result file path")
    parser.add_argument("--workers", type=int, help="concurrent searches (default 5, or GAMELINKS_WORKERS)")
    parser.add_argument("--delay", type=float, help="seconds between dispatching games (default 0.3)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="console log level")
    parser.add_argument("--log-dir", help="directory for log files (default logs/)")
    return parser


def run(args: argparse.Namespace, settings: Settings) -> dict:
    input_path = Path(args.input)
    output_path = Path(args.output)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")

    try:
        games = load_games(input_path)
    except InputError as e:
        raise SystemExit(str(e))

    terminal_lock = threading.Lock()
    logger = get_logger(
        level=settings.log_level,
        log_dir=settings.log_dir,
        console_lock=terminal_lock,
    )
    log = LogChannel(logger)

    try:
        writer = HtmlWriter.open(output_path)
    except OSError as e:
        raise SystemExit(f"Cannot create result file {output_path}: {e}")

    fetcher = FetchClient(settings, log=log)
    store = StoreClient(fetcher, log=log)
    lens = LensClient(fetcher, log=log)
    disambiguator = Disambiguator(lens, TerminalPrompter(lock=terminal_lock), log=log)

    logger.info(f"Resolving {len(games)} game(s) from {input_path}")
    with writer:
        pool = ResolverPool(
            store,
            disambiguator,
            writer,
            log,
            workers=settings.workers,
            dispatch_delay=settings.dispatch_delay,
        )
        outcomes = pool.run(games)

    logger.info(f"Wrote {writer.blocks} block(s) to {output_path}")
    logger.log_metrics_summary()
    logger.info("done")
    return outcomes


def main(argv: Optional[List[str]] = None) -> None:
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env().with_overrides(
            workers=args.workers,
            dispatch_delay=args.delay,
            log_level=args.log_level,
            log_dir=Path(args.log_dir) if args.log_dir else None,
        )
    except ValueError as e:
        parser.error(str(e))

    run(args, settings)


if __name__ == "__main__":
    main()
