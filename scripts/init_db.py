from dairy_billing.db.engine import get_engine
from dairy_billing.db.schema import metadata

def main():
    engine = get_engine()
    metadata.drop_all(engine)
    metadata.create_all(engine)
    print("DB schema created (clients, deliveries, bills).")

if __name__ == "__main__":
    main()
