from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Callable
from concurrent.futures import Future
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, load_config
from ..excel.reader import SourceError, load_source
from ..indexing.materializer import LoadFailure
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import get_logger, log_summary, set_debug, setup_logging
from ..models.error_record import ErrorRecord
from ..models.query import QueryRequest, QueryStatus, RequestKind
from ..models.records import RawTable
from ..services.catalog import Catalog, Snapshot
from ..services.router import parse_request
from ..services.summary import ResultProjection, render_record, render_search_results, render_table, summary_message
from ..storage.snapshot import load_snapshot, save_snapshot

"""CLI entrypoint.

Flow:
- load .env, then the YAML config
- warm start from the JSON snapshot, or read the source when there is none
  (or when --reload is given)
- answer one --query line, or run the interactive command loop

Inside the loop `!reload` runs in the background; queries keep answering from
the previous snapshot until the new one is published.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_RELOAD_FAILED = 2

PROMPT = 'Enter in search term ("exit" to stop): '
USAGE = "Commands: !reload | !find <field> <value> | !scan <field> <term> | exit"


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env with python-dotenv; real environment variables win unless override=True."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Search sheet records by free text or by field")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--reload", action="store_true", help="Re-read the source instead of the snapshot")
    p.add_argument("--query", help="Answer a single line (search term or !command) and exit")
    return p.parse_args(argv)


class Session:
    """Wires config, catalog, snapshot store and error log together for one run."""

    def __init__(self, cfg: AppConfig, *, out: Callable[[str], None] = print) -> None:
        self.cfg = cfg
        self.catalog = Catalog(cfg.search_settings())
        self.projection: ResultProjection = cfg.projection()
        self.error_log = ErrorLogBuffer()
        self.out = out
        self.reload_failed = False
        self.logger = get_logger()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _fetch(self) -> list[RawTable]:
        return load_source(Path(self.cfg.source_path), self.cfg.sheets)

    def _record_failure(self, error: Exception, source: str) -> None:
        self.reload_failed = True
        if isinstance(error, LoadFailure):
            record = ErrorRecord.create(source, error.sheet, error.row, "LOAD_FAILURE", str(error))
        elif isinstance(error, SourceError):
            record = ErrorRecord.create(source, "", -1, "SOURCE_ERROR", str(error))
        else:
            record = ErrorRecord.create(source, "", -1, type(error).__name__.upper(), str(error))
        self.error_log.append(record)
        fp = self.error_log.flush()
        kept = f"keeping v{self.catalog.snapshot.version}" if self.catalog.ready else "no data loaded"
        self.logger.error(f"reload failed ({kept}): {error}")
        if fp is not None:
            self.logger.debug(f"error log: {fp}")

    def _published(self, snapshot: Snapshot, started: float) -> None:
        try:
            save_snapshot(snapshot.dataset, Path(self.cfg.snapshot_path))
        except OSError as e:
            self.logger.warning(f"snapshot not written: {e}")
        dataset = snapshot.dataset
        log_summary(summary_message(snapshot.version, len(dataset), dataset.total_records, time.monotonic() - started))

    def reload(self) -> bool:
        """Re-read the source and publish a new snapshot synchronously."""
        started = time.monotonic()
        try:
            snapshot = self.catalog.load(self._fetch())
        except (SourceError, LoadFailure) as e:
            self._record_failure(e, self.cfg.source_path)
            return False
        self._published(snapshot, started)
        return True

    def reload_in_background(self) -> Future[Snapshot]:
        started = time.monotonic()
        future = self.catalog.reload_in_background(self._fetch)

        def done(f: Future[Snapshot]) -> None:
            error = f.exception()
            if error is None:
                self._published(f.result(), started)
            else:
                self._record_failure(error, self.cfg.source_path)

        future.add_done_callback(done)
        return future

    def warm_start(self) -> bool:
        """Adopt the persisted snapshot; False when there is none or it is unusable."""
        path = Path(self.cfg.snapshot_path)
        if not path.exists():
            self.logger.info(f"no snapshot at {path}")
            return False
        try:
            dataset = load_snapshot(path)
        except (OSError, LoadFailure) as e:
            self.logger.warning(f"snapshot unusable, reading source instead: {e}")
            return False
        snapshot = self.catalog.adopt(dataset)
        self.logger.info(f"snapshot {path} loaded as v{snapshot.version}")
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def handle(self, request: QueryRequest) -> bool:
        """Act on one request; returns False when the session should end."""
        kind = request.kind
        if kind is RequestKind.EMPTY:
            return True
        if kind is RequestKind.EXIT:
            return False
        if kind is RequestKind.RELOAD:
            self.out("Reloading in the background...")
            self.reload_in_background()
            return True
        if kind is RequestKind.UNKNOWN_COMMAND:
            self.out("Command not understood")
            self.out(USAGE)
            return True

        result = self.catalog.route(request)
        if kind is RequestKind.FIELD_LOOKUP:
            if result.match is None:
                self.out(f"Unable to find {request.field_name} with {request.term}.")
            else:
                self.out(render_record(f"{request.field_name}: {request.term}", result.match.headers, result.match.row))
        elif kind is RequestKind.FIELD_SCAN:
            self.out(render_table(f"{request.field_name}: {request.term}", (), result.rows))
            self.out(f"Found {len(result.rows)} matches.")
        elif result.status is QueryStatus.INDEX_UNAVAILABLE:
            self.out("Unable to search, try running !reload again")
        else:
            self.out(render_search_results(request.term, self.projection, result.hits))
        return True

    def run_loop(self, read: Callable[[str], str] = input) -> None:
        self.out(f"=== {self.cfg.app_name} ===")
        self.out(USAGE)
        while True:
            try:
                line = read(PROMPT)
            except (EOFError, KeyboardInterrupt):
                self.out("")
                break
            if not self.handle(parse_request(line)):
                break

    def close(self) -> None:
        self.catalog.close()


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] from tests must not fall back to sys.argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    session = Session(cfg)
    try:
        # the snapshot stays authoritative if the forced reload fails
        warm = session.warm_start()
        if args.reload or not warm:
            session.reload()

        if args.query is not None:
            if not session.catalog.ready:
                logger.error("no data available to query")
                return EXIT_FATAL
            session.handle(parse_request(args.query))
        else:
            session.run_loop()
    finally:
        session.close()

    if session.reload_failed:
        # a failed reload with nothing ever published is a failed start
        return EXIT_RELOAD_FAILED if session.catalog.ready else EXIT_FATAL
    return EXIT_SUCCESS
