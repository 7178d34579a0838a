# dairy_billing/services/errors.py


class BillingError(Exception):
    """Base class for every error the billing core raises."""


class InvalidClientError(BillingError):
    def __init__(self, client_id, reason: str = "does not exist"):
        self.client_id = client_id
        super().__init__(f"Client {client_id} {reason}")


class DuplicateClientError(BillingError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Client named {name!r} already exists")


class DuplicateBillError(BillingError):
    def __init__(self, client_id: int, month: int, year: int):
        self.client_id = client_id
        self.month = month
        self.year = year
        super().__init__(f"Bill already exists for client {client_id} in {year}-{month:02d}")


class BillNotFoundError(BillingError):
    def __init__(self, bill_id: int):
        self.bill_id = bill_id
        super().__init__(f"Bill {bill_id} not found")


class AlreadyPaidError(BillingError):
    def __init__(self, bill_id: int):
        self.bill_id = bill_id
        super().__init__(f"Bill {bill_id} is already paid")


class InvalidPeriodError(BillingError):
    def __init__(self, month, year):
        self.month = month
        self.year = year
        super().__init__(f"Invalid billing period: month={month!r}, year={year!r}")


class BillingValidationError(BillingError):
    """A supplied quantity, rate or amount is out of range."""
