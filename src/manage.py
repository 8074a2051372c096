"""LeadCollect connector management CLI.

Usage:
    python src/manage.py setup-db                  # Create connector tables
    python src/manage.py drop-db                   # Drop connector tables
    python src/manage.py detect-abandoned          # Run one idle-cart check (cron)
    python src/manage.py detect-abandoned --min-age 7200 --limit 200
"""

import argparse
import sys

from leadcollect.abandoned_cart.detection import DEFAULT_LIMIT, DEFAULT_MIN_AGE_SECONDS, DetectAbandonedCarts


def setup_database(domain):
    from leadcollect.utils.db import setup_db

    print("Creating leadcollect database schema...")
    setup_db(domain)
    print("Done.")


def drop_database(domain):
    from leadcollect.utils.db import drop_db

    print("Dropping leadcollect database schema...")
    drop_db(domain)
    print("Done.")


def detect_abandoned(domain, min_age_seconds=DEFAULT_MIN_AGE_SECONDS, limit=DEFAULT_LIMIT):
    """Run one idle-cart check and return the summary."""
    return domain.process(
        DetectAbandonedCarts(min_age_seconds=min_age_seconds, limit=limit),
        asynchronous=False,
    )


def main():
    parser = argparse.ArgumentParser(description="LeadCollect connector management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    detect_parser = subparsers.add_parser("detect-abandoned", help="Record idle carts as abandoned")
    detect_parser.add_argument("--min-age", type=int, default=DEFAULT_MIN_AGE_SECONDS, help="Idle seconds")
    detect_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Maximum carts per run")

    args = parser.parse_args()

    from leadcollect.domain import leadcollect

    leadcollect.init()

    if args.command == "setup-db":
        setup_database(leadcollect)
    elif args.command == "drop-db":
        drop_database(leadcollect)
    elif args.command == "detect-abandoned":
        with leadcollect.domain_context():
            summary = detect_abandoned(leadcollect, args.min_age, args.limit)
        print(f"Marked {summary['marked']}, refreshed {summary['refreshed']}, skipped {summary['skipped']}.")
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
