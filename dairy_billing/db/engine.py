# dairy_billing/db/engine.py

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from dairy_billing import config

DB_URL = config.DB_URL


def get_engine() -> Engine:
    # echo=True if you want to see SQL printed in the terminal
    return create_engine(DB_URL, future=True)
