from __future__ import annotations

import argparse
import signal
from typing import Sequence

from relaywatch import __version__
from relaywatch.core.config import load_settings
from relaywatch.core.errors import ConfigError, WatchSourceError
from relaywatch.core.logging import configure_logging, logger
from relaywatch.infra.db import create_session_factory, create_store_engine
from relaywatch.services.emitter import Emitter
from relaywatch.services.event_loop import EventLoop
from relaywatch.services.name_filter import NameFilter
from relaywatch.services.resolver import RowResolver
from relaywatch.services.watcher import WatchSource


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="relaywatch",
        description="Report the latest CrossData row whenever a replication relay file changes.",
    )
    parser.add_argument("config", help="TOML configuration file, relative paths resolve against the CWD")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        configure_logging()
        logger.error("%s", exc)
        return 1

    configure_logging(settings.log_level)
    try:
        source = WatchSource.from_settings(settings)
        engine = create_store_engine(settings)
    except (ConfigError, WatchSourceError) as exc:
        logger.error("%s", exc)
        return 1

    loop = EventLoop(
        RowResolver(create_session_factory(engine)),
        NameFilter(settings.file_name_pattern),
        Emitter(),
        settings.source,
    )

    def _request_close(signum, frame) -> None:
        source.request_close()

    previous_handlers = {sig: signal.signal(sig, _request_close) for sig in (signal.SIGINT, signal.SIGTERM)}

    try:
        source.start()
        result = loop.run(source)
    except WatchSourceError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
        source.stop()
        engine.dispose()

    if not result.ok:
        logger.error("fatal: %s", result.error)
        return 1
    logger.info("stopped after %d records", result.emitted)
    return 0
