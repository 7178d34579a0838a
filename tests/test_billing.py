"""Tests for monthly bill generation and manual bill creation."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError

from dairy_billing.db.schema import bills
from dairy_billing.services import billing
from dairy_billing.services.billing import (
    create_bill,
    due_date_for,
    generate_monthly_bills,
    get_bill,
    get_bills_for_client,
    get_bills_for_period,
)
from dairy_billing.services.errors import (
    BillingValidationError,
    BillNotFoundError,
    DuplicateBillError,
    InvalidClientError,
    InvalidPeriodError,
)
from dairy_billing.services.ledger import record_delivery
from tests.conftest import OTHER_OWNER, OWNER


def _deliver_whole_month(conn, client_id, month, year, quantities):
    start = date(year, month, 1)
    for offset, quantity in enumerate(quantities):
        record_delivery(conn, OWNER, client_id, start + timedelta(days=offset), Decimal(quantity))


class TestDueDate:
    def test_due_on_tenth_of_next_month(self):
        assert due_date_for(3, 2024) == date(2024, 4, 10)

    def test_december_rolls_into_next_year(self):
        assert due_date_for(12, 2024) == date(2025, 1, 10)


class TestGenerateMonthlyBills:
    def test_projects_quantity_when_no_deliveries_tracked(self, conn, make_client):
        client = make_client(default_daily_quantity="2", rate_per_liter="45")

        result = generate_monthly_bills(conn, OWNER, 3, 2024)

        assert result.generated_count == 1
        (bill,) = get_bills_for_period(conn, OWNER, 3, 2024)
        assert bill.client_id == client.id
        assert bill.total_quantity == Decimal("62")
        assert bill.total_amount == Decimal("2790")
        assert bill.due_date == date(2024, 4, 10)
        assert bill.quantity_source == "projected"
        assert bill.is_paid is False
        assert bill.paid_date is None

    def test_uses_tracked_deliveries_when_present(self, conn, make_client):
        client = make_client(default_daily_quantity="2", rate_per_liter="45")
        # 27 days of 2 litres plus 4 days of 1 litre = 58 litres
        _deliver_whole_month(conn, client.id, 3, 2024, ["2"] * 27 + ["1"] * 4)

        generate_monthly_bills(conn, OWNER, 3, 2024)

        (bill,) = get_bills_for_period(conn, OWNER, 3, 2024)
        assert bill.total_quantity == Decimal("58")
        assert bill.total_amount == Decimal("2610")
        assert bill.quantity_source == "tracked"

    def test_missed_deliveries_are_not_billed(self, conn, make_client):
        client = make_client(default_daily_quantity="2", rate_per_liter="50")
        record_delivery(conn, OWNER, client.id, date(2024, 3, 1), Decimal("2"), delivered=True)
        record_delivery(conn, OWNER, client.id, date(2024, 3, 2), Decimal("2"), delivered=False)
        record_delivery(conn, OWNER, client.id, date(2024, 3, 3), Decimal("1.5"), delivered=True)

        generate_monthly_bills(conn, OWNER, 3, 2024)

        (bill,) = get_bills_for_period(conn, OWNER, 3, 2024)
        assert bill.total_quantity == Decimal("3.5")
        assert bill.total_amount == Decimal("175")

    def test_all_missed_bills_zero_rather_than_projecting(self, conn, make_client):
        client = make_client()
        record_delivery(conn, OWNER, client.id, date(2024, 3, 1), Decimal("2"), delivered=False)

        generate_monthly_bills(conn, OWNER, 3, 2024)

        (bill,) = get_bills_for_period(conn, OWNER, 3, 2024)
        assert bill.total_quantity == Decimal("0")
        assert bill.total_amount == Decimal("0")
        assert bill.quantity_source == "tracked"

    def test_second_run_is_idempotent(self, conn, make_client):
        first = make_client()
        second = make_client()

        generate_monthly_bills(conn, OWNER, 3, 2024)
        before = get_bills_for_period(conn, OWNER, 3, 2024)
        result = generate_monthly_bills(conn, OWNER, 3, 2024)
        after = get_bills_for_period(conn, OWNER, 3, 2024)

        assert result.generated_count == 0
        assert sorted(result.skipped_client_ids) == sorted([first.id, second.id])
        assert [b.id for b in before] == [b.id for b in after]

    def test_existing_bill_is_not_overwritten(self, conn, make_client):
        client = make_client()
        manual = create_bill(conn, OWNER, client.id, 3, 2024, quantity_override=Decimal("10"))

        result = generate_monthly_bills(conn, OWNER, 3, 2024)

        assert result.skipped_client_ids == [client.id]
        assert get_bill(conn, OWNER, manual.id).total_quantity == Decimal("10")

    def test_inactive_clients_are_not_billed(self, conn, make_client):
        make_client(is_active=False)
        active = make_client()

        result = generate_monthly_bills(conn, OWNER, 3, 2024)

        assert result.generated_count == 1
        assert [b.client_id for b in get_bills_for_period(conn, OWNER, 3, 2024)] == [active.id]

    def test_only_bills_the_requesting_owner(self, conn, make_client):
        make_client(owner_id=OTHER_OWNER)
        make_client()

        result = generate_monthly_bills(conn, OWNER, 3, 2024)

        assert result.generated_count == 1
        assert get_bills_for_period(conn, OTHER_OWNER, 3, 2024) == []

    def test_one_client_failing_does_not_stop_the_batch(self, conn, make_client, monkeypatch):
        broken = make_client()
        healthy = make_client()
        real_fetch = billing.get_deliveries_for_client_in_month

        def flaky_fetch(conn, owner_id, client_id, month, year):
            if client_id == broken.id:
                raise InvalidClientError(client_id, "was removed mid-run")
            return real_fetch(conn, owner_id, client_id, month, year)

        monkeypatch.setattr(billing, "get_deliveries_for_client_in_month", flaky_fetch)

        result = generate_monthly_bills(conn, OWNER, 3, 2024)

        assert result.generated_count == 1
        assert [f.client_id for f in result.failures] == [broken.id]
        assert result.failures[0].error == "InvalidClientError"
        assert [b.client_id for b in get_bills_for_period(conn, OWNER, 3, 2024)] == [healthy.id]

    def test_invalid_period_rejected(self, conn):
        with pytest.raises(InvalidPeriodError):
            generate_monthly_bills(conn, OWNER, 13, 2024)

    def test_storage_rejects_a_second_bill_for_the_period(self, conn, make_client):
        client = make_client()
        generate_monthly_bills(conn, OWNER, 3, 2024)

        with pytest.raises(IntegrityError):
            conn.execute(
                insert(bills).values(
                    owner_id=OWNER,
                    client_id=client.id,
                    month=3,
                    year=2024,
                    total_quantity=1,
                    rate_per_liter=1,
                    total_amount=1,
                    quantity_source="manual",
                    is_paid=False,
                    due_date=date(2024, 4, 10),
                )
            )

    def test_amount_matches_quantity_times_rate(self, conn, make_client):
        make_client(default_daily_quantity="1.75", rate_per_liter="52.5")
        make_client(default_daily_quantity="0.5", rate_per_liter="61")

        generate_monthly_bills(conn, OWNER, 2, 2024)

        for bill in get_bills_for_period(conn, OWNER, 2, 2024):
            expected = (bill.total_quantity * bill.rate_per_liter).quantize(Decimal("0.01"))
            assert bill.total_amount == expected


class TestCreateBill:
    def test_defaults_to_projection_and_client_rate(self, conn, make_client):
        client = make_client(default_daily_quantity="1", rate_per_liter="60")

        bill = create_bill(conn, OWNER, client.id, 2, 2024)

        assert bill.total_quantity == Decimal("29")
        assert bill.rate_per_liter == Decimal("60")
        assert bill.total_amount == Decimal("1740")
        assert bill.quantity_source == "projected"
        assert bill.due_date == date(2024, 3, 10)

    def test_overrides_are_used(self, conn, make_client):
        client = make_client()

        bill = create_bill(
            conn, OWNER, client.id, 12, 2024,
            quantity_override=Decimal("40"),
            rate_override=Decimal("55.5"),
        )

        assert bill.total_quantity == Decimal("40")
        assert bill.rate_per_liter == Decimal("55.5")
        assert bill.total_amount == Decimal("2220")
        assert bill.quantity_source == "manual"
        assert bill.due_date == date(2025, 1, 10)

    @pytest.mark.parametrize(
        "overrides",
        [
            {},
            {"quantity_override": Decimal("5")},
            {"rate_override": Decimal("1")},
            {"quantity_override": Decimal("0")},
            {"quantity_override": Decimal("-3")},
            {"rate_override": Decimal("0")},
            {"rate_override": Decimal("-1")},
        ],
    )
    def test_duplicate_fails_regardless_of_overrides(self, conn, make_client, overrides):
        client = make_client()
        create_bill(conn, OWNER, client.id, 3, 2024)

        with pytest.raises(DuplicateBillError):
            create_bill(conn, OWNER, client.id, 3, 2024, **overrides)

    def test_unknown_client(self, conn):
        with pytest.raises(InvalidClientError):
            create_bill(conn, OWNER, 404, 3, 2024)

    def test_inactive_client(self, conn, make_client):
        client = make_client(is_active=False)
        with pytest.raises(InvalidClientError):
            create_bill(conn, OWNER, client.id, 3, 2024)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"quantity_override": Decimal("0")},
            {"quantity_override": Decimal("-3")},
            {"rate_override": Decimal("0")},
            {"rate_override": Decimal("-45")},
        ],
    )
    def test_non_positive_overrides_rejected(self, conn, make_client, overrides):
        client = make_client()
        with pytest.raises(BillingValidationError):
            create_bill(conn, OWNER, client.id, 3, 2024, **overrides)
        assert conn.execute(select(bills)).first() is None

    def test_invalid_period(self, conn, make_client):
        client = make_client()
        with pytest.raises(InvalidPeriodError):
            create_bill(conn, OWNER, client.id, 0, 2024)

    def test_overrides_rounded_to_stored_precision(self, conn, make_client):
        client = make_client()

        bill = create_bill(
            conn, OWNER, client.id, 3, 2024,
            quantity_override=Decimal("10.0005"),
            rate_override=Decimal("45.555"),
        )

        assert bill.total_quantity == Decimal("10.001")
        assert bill.rate_per_liter == Decimal("45.56")
        assert bill.total_amount == Decimal("455.65")
        assert bill.total_amount == (bill.total_quantity * bill.rate_per_liter).quantize(Decimal("0.01"))

    def test_override_rounding_to_zero_rejected(self, conn, make_client):
        client = make_client()
        with pytest.raises(BillingValidationError):
            create_bill(conn, OWNER, client.id, 3, 2024, quantity_override=Decimal("0.0004"))
        with pytest.raises(BillingValidationError):
            create_bill(conn, OWNER, client.id, 3, 2024, rate_override=Decimal("0.004"))


class TestQueries:
    def test_bills_for_client_newest_first(self, conn, make_client):
        client = make_client()
        for month, year in [(11, 2023), (1, 2024), (12, 2023)]:
            create_bill(conn, OWNER, client.id, month, year)

        periods = [(b.year, b.month) for b in get_bills_for_client(conn, OWNER, client.id)]
        assert periods == [(2024, 1), (2023, 12), (2023, 11)]

    def test_get_bill_hides_other_owners(self, conn, make_client):
        client = make_client(owner_id=OTHER_OWNER)
        bill = create_bill(conn, OTHER_OWNER, client.id, 3, 2024)

        with pytest.raises(BillNotFoundError):
            get_bill(conn, OWNER, bill.id)
