# parse_data.py
"""
Parse a delivery log CSV and print basic stats without touching the database.
"""

from scripts.ingest import parse_delivery_csv, FILE_PATH


def main():
    clients_list, deliveries_list, stats = parse_delivery_csv(FILE_PATH)

    print(f"Total CSV rows read:   {stats['n_rows']}")
    print(f"Unique clients:        {stats['n_clients']}")
    print(f"Deliveries parsed:     {stats['n_deliveries']}")
    print(f"Rows with errors:      {stats['n_errors']}")
    print(f"Duplicate days:        {stats['n_duplicate_days']}")

    if stats["error_examples"]:
        print("\nExample errors:")
        for ex in stats["error_examples"]:
            print(f"- Row {ex['row_number']}: {ex['error']}")


if __name__ == "__main__":
    main()
