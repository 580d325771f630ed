import argparse
import logging

from hub_api.accounts import purge_expired_verification_tokens
from hub_api.config import load_settings
from hub_api.db import Database


def main() -> None:
    parser = argparse.ArgumentParser(description="Clear expired email verification tokens of unverified accounts.")
    parser.parse_args()
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    database = Database.from_settings(settings)
    with database.session() as db:
        purged = purge_expired_verification_tokens(db)
    print(f"purged {purged} expired verification tokens")


if __name__ == "__main__":
    main()
