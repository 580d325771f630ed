import argparse
import json
import logging
import sys
from dataclasses import asdict

from hub_api.config import load_settings
from hub_api.db import Database
from hub_api.reconcile import reconcile


def main() -> None:
    parser = argparse.ArgumentParser(description="Compare the project catalog with repositories on disk.")
    parser.add_argument("--prune-staging", action="store_true", help="remove leftover staging directories")
    args = parser.parse_args()
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    database = Database.from_settings(settings)
    with database.session() as db:
        report = reconcile(db, settings.base_repo_dir, prune_staging=args.prune_staging)
    print(json.dumps(asdict(report), indent=2))
    if not report.is_clean():
        sys.exit(1)


if __name__ == "__main__":
    main()
