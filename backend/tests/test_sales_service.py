"""
Sales aggregation tests. Pure functions over plain objects, no database.
"""

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

from tillpoint.services.sales_service import summarize_sales, hourly_sales, completed_orders


DAY = date(2026, 10, 19)


def order(id, when, total, status="completed"):
    return SimpleNamespace(id=id, order_date=when, total_amount=Decimal(total), status=status)


def item(order_id, product_id, qty, price):
    return SimpleNamespace(order_id=order_id, product_id=product_id, quantity=qty, unit_price=Decimal(price))


def inventory(id, product_id, cost, updated):
    return SimpleNamespace(id=id, product_id=product_id, stock_level=0,
                           purchase_price=None if cost is None else Decimal(cost), last_updated=updated)


class TestSummary:
    def test_empty_day(self):
        summary = summarize_sales([], [], [], day=DAY)
        assert summary.total_sales == Decimal("0.00")
        assert summary.total_orders == 0
        assert summary.average_order_value == Decimal("0.00")
        assert summary.total_profit == Decimal("0.00")

    def test_status_match_is_case_insensitive(self):
        orders = [
            order(1, datetime(2026, 10, 19, 9), "10.00", "Completed"),
            order(2, datetime(2026, 10, 19, 10), "5.00", "COMPLETED"),
            order(3, datetime(2026, 10, 19, 11), "99.00", "cancelled"),
        ]
        summary = summarize_sales(orders, [], [], day=DAY)
        assert summary.total_orders == 2
        assert summary.total_sales == Decimal("15.00")
        assert summary.average_order_value == Decimal("7.50")

    def test_average_rounds_half_up(self):
        orders = [order(i, datetime(2026, 10, 19, 9), "10.00") for i in (1, 2)]
        orders.append(order(3, datetime(2026, 10, 19, 9), "10.01"))
        # 30.01 / 3 = 10.00333...
        assert summarize_sales(orders, [], [], day=DAY).average_order_value == Decimal("10.00")

    def test_profit_uses_latest_cost_basis(self):
        orders = [order(1, datetime(2026, 10, 19, 9), "30.00")]
        items = [item(1, "P1", 3, "10.00")]
        stock = [
            inventory(1, "P1", "2.00", datetime(2026, 1, 1)),
            inventory(2, "P1", "4.00", datetime(2026, 10, 1)),
        ]
        assert summarize_sales(orders, items, stock, day=DAY).total_profit == Decimal("18.00")

    def test_missing_cost_counts_as_zero(self):
        orders = [order(1, datetime(2026, 10, 19, 9), "12.50")]
        items = [item(1, "P1", 1, "12.50")]
        stock = [inventory(1, "P1", None, datetime(2026, 1, 1))]
        assert summarize_sales(orders, items, stock, day=DAY).total_profit == Decimal("12.50")

    def test_items_of_other_days_ignored(self):
        orders = [
            order(1, datetime(2026, 10, 19, 9), "10.00"),
            order(2, datetime(2026, 10, 18, 9), "10.00"),
        ]
        items = [item(1, "P1", 1, "10.00"), item(2, "P1", 1, "10.00")]
        assert summarize_sales(orders, items, [], day=DAY).total_profit == Decimal("10.00")

    def test_all_time_without_day(self):
        orders = [
            order(1, datetime(2026, 10, 19, 9), "10.00"),
            order(2, datetime(2025, 1, 1, 9), "20.00"),
        ]
        assert summarize_sales(orders, [], []).total_sales == Decimal("30.00")


class TestHourly:
    def test_empty_day_has_24_zero_buckets(self):
        series = hourly_sales([], DAY)
        assert len(series) == 24
        assert all(bucket["total_sales"] == 0 for bucket in series)
        assert series[0]["label"] == "00:00"
        assert series[23]["label"] == "23:00"

    def test_buckets_by_hour(self):
        orders = [
            order(1, datetime(2026, 10, 19, 9, 5), "10.00"),
            order(2, datetime(2026, 10, 19, 9, 55), "2.50"),
            order(3, datetime(2026, 10, 19, 17, 0), "4.00"),
        ]
        series = {b["hour"]: b["total_sales"] for b in hourly_sales(orders, DAY)}
        assert series[9] == 12.50
        assert series[17] == 4.00
        assert sum(series.values()) == 16.50

    def test_local_timezone_shifts_day_and_hour(self):
        # New York is UTC-4 on this date
        orders = [
            order(1, datetime(2026, 10, 19, 3, 30), "1.00"),   # 18th, 23:30 local
            order(2, datetime(2026, 10, 19, 13, 15), "2.00"),  # 09:15 local
            order(3, datetime(2026, 10, 20, 3, 0), "3.00"),    # 23:00 local
        ]
        tz = "America/New_York"
        series = {b["hour"]: b["total_sales"] for b in hourly_sales(orders, DAY, tz)}
        assert series[9] == 2.00
        assert series[23] == 3.00
        assert [o.id for o in completed_orders(orders, DAY, tz)] == [2, 3]

    def test_dst_end_day_still_has_24_buckets(self):
        # Clocks go back in New York on 2026-11-01; the day is 25 hours long
        orders = [
            order(1, datetime(2026, 11, 1, 5, 30), "1.00"),  # 01:30 EDT
            order(2, datetime(2026, 11, 1, 6, 30), "2.00"),  # 01:30 EST
        ]
        series = hourly_sales(orders, date(2026, 11, 1), "America/New_York")
        assert len(series) == 24
        assert series[1]["total_sales"] == 3.00
