# load_data.py
"""
Load a parsed delivery log into the database for the default owner.
"""

from dairy_billing import config
from scripts.ingest import parse_delivery_csv, load_into_db, FILE_PATH


def main():
    clients_list, deliveries_list, stats = parse_delivery_csv(FILE_PATH)
    load_into_db(config.DEFAULT_OWNER_ID, clients_list, deliveries_list)

    print("Load complete.")
    print(f"Total CSV rows read:   {stats['n_rows']}")
    print(f"Unique clients:        {stats['n_clients']}")
    print(f"Deliveries parsed:     {stats['n_deliveries']}")
    print(f"Rows with errors:      {stats['n_errors']}")


if __name__ == "__main__":
    main()
