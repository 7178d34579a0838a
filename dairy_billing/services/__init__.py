# dairy_billing/services/__init__.py
"""
Billing & delivery reconciliation core.

Every operation takes an open SQLAlchemy connection plus the owner_id of the
dairy whose data it touches. Callers own the transaction: use
``engine.begin()`` for writes and ``engine.connect()`` for reads.
"""
