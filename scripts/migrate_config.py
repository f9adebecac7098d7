#!/usr/bin/env python
"""Migration script: Apply pending config migrations.

This script loads a sydneyqt config document, runs every registered
migration it has not seen yet and writes the result back.

The script is idempotent - safe to run multiple times.

Usage:
    python scripts/migrate_config.py [path/to/config.json] [--dry-run]

Environment variables (via .env):
    SYDNEYQT_CONFIG_PATH=config.json
"""

import argparse
import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sydneyqt.config import AppSettings
from sydneyqt.errors import ConfigLoadError
from sydneyqt.infra.storage.json_store import JsonConfigStore
from sydneyqt.migrations import MigrationEngine


def main() -> int:
    """Run the migration."""
    parser = argparse.ArgumentParser(description="Apply pending sydneyqt config migrations")
    parser.add_argument("path", nargs="?", type=Path, help="Config file (default: from settings)")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    path = args.path or AppSettings().config_path

    print("\n" + "=" * 60)
    print("Migration: Apply Pending Config Migrations")
    print("=" * 60)

    store = JsonConfigStore(path)
    engine = MigrationEngine()

    print(f"\nLoading config: {path}...")
    try:
        document = store.load_document()
    except ConfigLoadError as e:
        print(f"  Could not load config: {e}")
        return 1

    if document is None:
        print("  No config file found, a default config will be created")
        document = {}

    # Step 1: Report current state
    print("\n--- Current State ---")
    pending = engine.pending(document)
    print(f"  Known migrations: {len(engine.known_ids)}")
    print(f"  Pending migrations: {len(pending)}")
    for migration_id in pending:
        print(f"    - {migration_id}")

    if not pending and path.exists():
        print("\n--- Migration Already Complete ---")
        print("  Config is up to date.")
        return 0

    # Step 2: Apply
    print("\n--- Applying Migrations ---")
    try:
        config = engine.apply(document)
    except ConfigLoadError as e:
        print(f"  FAILED: {e}")
        print("  Config file left untouched.")
        return 1

    if args.dry_run:
        print("  Dry run: config not written")
        return 0

    store.save_document(config.model_dump(mode="json"))

    # Summary
    print("\n" + "=" * 60)
    print("MIGRATION COMPLETED SUCCESSFULLY")
    print("=" * 60)
    print("\nSummary:")
    print(f"  - Applied {len(pending)} migration(s)")
    print(f"  - Workspaces: {len(config.workspaces)}")
    print(f"  - OpenAI backends: {len(config.open_ai_backends)}")
    print(f"  - Written to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
