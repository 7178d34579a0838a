# scripts/ingest.py

import csv
from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging

from pydantic import EmailStr, TypeAdapter, ValidationError

from dairy_billing import config
from dairy_billing.db.engine import get_engine
from dairy_billing.models.clients import ClientIn
from dairy_billing.services.ledger import record_delivery
from dairy_billing.services.registry import create_client, get_client_by_name

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

FILE_PATH = config.DELIVERY_CSV_PATH

_EMAIL = TypeAdapter(EmailStr)

_TRUE_VALUES = {"", "1", "y", "yes", "true", "delivered"}
_FALSE_VALUES = {"0", "n", "no", "false", "missed"}


# ---- Helpers ----

def parse_quantity(value: str) -> Decimal:
    value = (value or "").strip()
    if value == "":
        return Decimal("0")
    try:
        quantity = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if quantity < 0:
        raise ValueError(f"Negative quantity: {value!r}")
    return quantity


def parse_delivery_date(value: str):
    value = (value or "").strip()
    if not value:
        raise ValueError("Missing delivery date")
    return datetime.strptime(value.split()[0], "%Y-%m-%d").date()


def parse_delivered(value: str) -> bool:
    value = (value or "").strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Unrecognised Delivered flag: {value!r}")


def _optional(value):
    value = (value or "").strip()
    return value or None


def parse_delivery_csv(file_path: str = FILE_PATH):
    """
    Read a delivery log export into client definitions and delivery rows.

    Client columns are taken from the first row that names a client; later
    rows only fill in contact details that were blank.
    """
    clients_by_name = {}
    deliveries_list = []

    n_rows = 0
    n_errors = 0
    error_examples = []

    seen_days = set()
    duplicate_day_examples = []
    duplicate_day_count = 0

    with open(file_path, newline="") as f:
        reader = csv.DictReader(f)

        for row in reader:
            n_rows += 1

            try:
                # ----- CLIENT HANDLING -----
                cname = row["ClientName"].strip()
                if not cname:
                    raise ValueError("Missing ClientName")

                phone = _optional(row.get("Phone"))
                email = _optional(row.get("Email"))
                if email is not None:
                    email = _EMAIL.validate_python(email)

                if cname not in clients_by_name:
                    clients_by_name[cname] = ClientIn(
                        name=cname,
                        phone=phone,
                        email=email,
                        default_daily_quantity=parse_quantity(row["DefaultDailyQuantity"]),
                        rate_per_liter=parse_quantity(row["RatePerLiter"]),
                    )
                else:
                    client = clients_by_name[cname]
                    if not client.phone and phone:
                        client.phone = phone
                    if not client.email and email:
                        client.email = email

                # ----- DELIVERY RECORD -----
                delivery_date = parse_delivery_date(row["Date"])
                delivery = {
                    "client_name": cname,
                    "delivery_date": delivery_date,
                    "quantity": parse_quantity(row["Quantity"]),
                    "delivered": parse_delivered(row.get("Delivered")),
                    "notes": _optional(row.get("Notes")),
                }
                deliveries_list.append(delivery)

                # Same client and day twice: the later row wins on load.
                day_key = (cname, delivery_date)
                if day_key in seen_days:
                    duplicate_day_count += 1
                    if len(duplicate_day_examples) < 5:
                        duplicate_day_examples.append(
                            f"Duplicate delivery for {cname!r} on {delivery_date} at CSV row {n_rows}"
                        )
                else:
                    seen_days.add(day_key)

            except (KeyError, ValueError, ValidationError) as e:
                n_errors += 1
                if len(error_examples) < 5:
                    error_examples.append(
                        {
                            "row_number": n_rows,
                            "row": dict(row),
                            "error": repr(e),
                        }
                    )

    clients_list = list(clients_by_name.values())

    stats = {
        "n_rows": n_rows,
        "n_clients": len(clients_by_name),
        "n_deliveries": len(deliveries_list),
        "n_errors": n_errors,
        "error_examples": error_examples,
        "n_duplicate_days": duplicate_day_count,
        "duplicate_day_examples": duplicate_day_examples,
    }
    return clients_list, deliveries_list, stats


def load_into_db(owner_id, clients_list, deliveries_list):
    """
    Create missing clients, then upsert deliveries. Safe to re-run on the same file.
    """
    engine = get_engine()
    with engine.begin() as conn:
        client_ids = {}
        for c in clients_list:
            existing = get_client_by_name(conn, owner_id, c.name)
            if existing is None:
                existing = create_client(
                    conn,
                    owner_id,
                    name=c.name,
                    default_daily_quantity=c.default_daily_quantity,
                    rate_per_liter=c.rate_per_liter,
                    phone=c.phone,
                    email=c.email,
                )
            client_ids[c.name] = existing.id

        for d in deliveries_list:
            record_delivery(
                conn,
                owner_id,
                client_ids[d["client_name"]],
                d["delivery_date"],
                d["quantity"],
                delivered=d["delivered"],
                notes=d["notes"],
            )


def main():
    clients_list, deliveries_list, stats = parse_delivery_csv(FILE_PATH)
    load_into_db(config.DEFAULT_OWNER_ID, clients_list, deliveries_list)

    logger.info(f"Total CSV rows read:   {stats['n_rows']}")
    logger.info(f"Unique clients:        {stats['n_clients']}")
    logger.info(f"Deliveries parsed:     {stats['n_deliveries']}")
    logger.info(f"Rows with errors:      {stats['n_errors']}")
    logger.info(
        "Duplicate deliveries (same client and day): %s",
        stats["n_duplicate_days"],
    )
    for example in stats["duplicate_day_examples"]:
        logger.warning("Duplicate delivery example: %s", example)

    if stats["error_examples"]:
        logger.warning("Example errors:")
        for ex in stats["error_examples"]:
            logger.warning("Row %s: %s", ex["row_number"], ex["error"])


if __name__ == "__main__":
    main()
