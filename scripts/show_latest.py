from __future__ import annotations

import argparse
import json

from relaywatch.core.config import load_settings
from relaywatch.infra.db import create_session_factory, create_store_engine
from relaywatch.services.emitter import format_timestamp
from relaywatch.services.resolver import RowResolver


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the latest CrossData row using a watcher config file.")
    parser.add_argument("config", help="TOML configuration file")
    args = parser.parse_args()

    settings = load_settings(args.config)
    engine = create_store_engine(settings)
    try:
        row = RowResolver(create_session_factory(engine)).fetch_latest()
    finally:
        engine.dispose()

    payload = None
    if row is not None:
        payload = row.model_dump()
        payload["created_at"] = format_timestamp(row.created_at_ns)
    print(json.dumps({"latest": payload}, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
