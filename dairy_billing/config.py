# dairy_billing/config.py
"""
Runtime settings and billing policy constants.

Anything that differs between deployments is read from the environment;
billing policy lives here as plain constants so tests and scripts share it.
"""

import os
from zoneinfo import ZoneInfo

DB_URL = os.getenv("DAIRY_DB_URL", "sqlite:///db.sqlite")  # file in project root
TIMEZONE = ZoneInfo(os.getenv("DAIRY_TIMEZONE", "Asia/Kolkata"))
LOG_LEVEL = os.getenv("DAIRY_LOG_LEVEL", "INFO").upper()
DELIVERY_CSV_PATH = os.getenv("DAIRY_DELIVERY_CSV", "data/deliveries.csv")

# ---- Billing policy ----

# Bills fall due on this day of the month after the billing period.
DUE_DAY_OF_NEXT_MONTH = 10

# Aging buckets: up to MEDIUM days is "medium", up to HIGH is "high", beyond is "critical".
AGING_MEDIUM_MAX_DAYS = 15
AGING_HIGH_MAX_DAYS = 30

UPCOMING_WINDOW_DAYS = 7

MIN_BILLING_YEAR = 1900
MAX_BILLING_YEAR = 9998  # due date rolls into year + 1

# Owner used by the batch scripts when none is given on the command line.
DEFAULT_OWNER_ID = os.getenv("DAIRY_OWNER_ID", "default")
