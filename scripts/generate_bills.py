# scripts/generate_bills.py
"""
Monthly billing run, meant for cron or any other scheduler.

    python -m scripts.generate_bills --owner dairy-42 --month 3 --year 2024

Without --month/--year the previous calendar month is billed.
"""

import argparse
import logging
import sys
from datetime import datetime

from dairy_billing import config
from dairy_billing.db.engine import get_engine
from dairy_billing.services.billing import generate_monthly_bills
from dairy_billing.services.errors import BillingError

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def previous_period(today):
    if today.month == 1:
        return 12, today.year - 1
    return today.month - 1, today.year


def parse_args(argv=None):
    default_month, default_year = previous_period(datetime.now(config.TIMEZONE).date())

    parser = argparse.ArgumentParser(description="Generate monthly milk bills")
    parser.add_argument("--owner", default=config.DEFAULT_OWNER_ID, help="Dairy owner id")
    parser.add_argument("--month", type=int, default=default_month)
    parser.add_argument("--year", type=int, default=default_year)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    engine = get_engine()
    try:
        with engine.begin() as conn:
            result = generate_monthly_bills(conn, args.owner, args.month, args.year)
    except BillingError as exc:
        logger.error("Bill generation aborted: %s", exc)
        return 2

    logger.info(f"Period:              {args.year}-{args.month:02d}")
    logger.info(f"Bills generated:     {result.generated_count}")
    logger.info(f"Already generated:   {len(result.skipped_client_ids)}")
    logger.info(f"Failed clients:      {len(result.failures)}")
    for failure in result.failures:
        logger.warning("Client %s: %s (%s)", failure.client_id, failure.detail, failure.error)

    return 1 if result.failures else 0


if __name__ == "__main__":
    sys.exit(main())
