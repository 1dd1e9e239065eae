#!/usr/bin/env python3
"""
Seed the clients table with generated test data.

Creates the schema first when it is missing.

Usage:
    python scripts/seed_clients.py --count 500
    python scripts/seed_clients.py --count 100 --clean --seed 42
"""

import sys
from argparse import ArgumentParser
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from onlinebank.core.config import settings
from onlinebank.core.logging_config import configure_logging
from onlinebank.core.schema import SchemaBootstrapper
from onlinebank.db import build_engine
from onlinebank.services.data_generator import ClientDataGenerator
from onlinebank.services.data_initializer import DataInitializer


def main():
    parser = ArgumentParser(description="Seed the clients table with test data")
    parser.add_argument("--count", type=int, default=settings.DATA_INIT_CLIENT_COUNT, help="Clients to create")
    parser.add_argument("--clean", action="store_true", help="Delete existing clients first")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
    parser.add_argument("--database-url", type=str, default=None, help="Overrides DATABASE_URL")
    args = parser.parse_args()

    configure_logging()

    cfg = settings.model_copy(update={"DATABASE_URL": args.database_url}) if args.database_url else settings
    engine = build_engine(cfg)

    try:
        if not SchemaBootstrapper(engine, script_path=cfg.SCHEMA_SCRIPT_PATH).ensure_schema():
            print("Schema initialization failed, see log for details")
            return 1

        initializer = DataInitializer(
            engine,
            client_count=args.count,
            clean_before=args.clean,
            generator=ClientDataGenerator(seed=args.seed),
        )
        created = initializer.initialize()
        print(f"Created {created} clients")
        return 0
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())
