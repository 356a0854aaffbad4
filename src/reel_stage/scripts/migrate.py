# src/reel_stage/scripts/migrate.py
"""Load, migrate and re-persist a backing file once, then exit."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from reel_stage.core.settings import settings
from reel_stage.db.writer import StorageError
from reel_stage.engine import Engine
from reel_stage.models import ENTITY_KINDS


def run_migration(path: Path | None = None) -> dict[str, int]:
    """Run the startup sequence against ``path`` and return row counts per kind."""
    with Engine.open(path, settings) as engine:
        state = engine.store.state
        counts = {kind: len(getattr(state, kind)) for kind in ENTITY_KINDS}
        counts["schema_version"] = state.schema_version
    return counts


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help=f"Backing file to migrate (default: {settings.database_path})",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        counts = run_migration(args.path)
    except StorageError as e:
        print(f"Migration failed: {e}", file=sys.stderr)
        return 1

    print(f"schema_version={counts.pop('schema_version')}")
    for kind, count in counts.items():
        print(f"{kind}={count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
