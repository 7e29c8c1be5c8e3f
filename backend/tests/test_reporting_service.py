# Overview: Pytest coverage for the daily store report, the session log and 日締め snapshots.

from datetime import timedelta

import pytest

from fairy.models import DailyReport, Product
from fairy.services import billing_service, reporting_service
from fairy.services.reporting_service import ReportError
from conftest import BUSINESS_DAY, jst


@pytest.fixture
def day_of_bills(db_session, table, table2, menu, staff, cast_a):
    """Three counted sessions and one voided one.

    card bill: set + drink S                 -> 4800 + 1200 = 6000
    cash bill: set + water - 5 yen           -> 4800 + 500 - 5 = 5295 (bill total 5290)
    open bill: 40 min free extension         -> 3600
    voided:    Moët, cancelled before close
    """
    card = billing_service.start_session(table_id=table.id, now=jst(BUSINESS_DAY, 20))
    billing_service.add_order(bill_id=card.id, product_id=menu["set"].id)
    billing_service.add_order(bill_id=card.id, product_id=menu["drink_s"].id, cast_id=cast_a.id)
    billing_service.close_bill(bill_id=card.id, payment_method="card", now=jst(BUSINESS_DAY, 21))

    cash = billing_service.start_session(table_id=table2.id, now=jst(BUSINESS_DAY, 21, 30), notes="常連")
    billing_service.add_order(bill_id=cash.id, product_id=menu["set"].id)
    billing_service.add_order(bill_id=cash.id, product_id=menu["water"].id)
    billing_service.add_adjustment(bill_id=cash.id, staff_id=staff.id, amount=-5, reason="端数")
    billing_service.close_bill(bill_id=cash.id, payment_method="cash", now=jst(BUSINESS_DAY, 22, 30))

    still_open = billing_service.start_session(table_id=table.id, now=jst(BUSINESS_DAY, 22, 10))
    billing_service.add_order(bill_id=still_open.id, product_id=menu["ext_free_40"].id)

    voided = billing_service.start_session(table_id=table2.id, now=jst(BUSINESS_DAY, 23))
    billing_service.add_order(bill_id=voided.id, product_id=menu["moet"].id, cast_id=cast_a.id)
    billing_service.cancel_session(bill_id=voided.id, staff_id=staff.id, reason="誤入力")

    return {"card": card, "cash": cash, "open": still_open, "voided": voided}


class TestDailyReport:
    def test_figures(self, store, day_of_bills):
        report = reporting_service.daily_report(store_id=store.id, business_date=BUSINESS_DAY)

        assert report["store_name"] == "Fairy 本店"
        assert report["business_date"] == "2026-10-14"
        assert report["groups"] == 3
        # 6000 + 5295 + 3600, floored once for the whole day
        assert report["sales"] == 14890
        assert report["avg_per_customer"] == 14890 // 3
        assert report["card_sales"] == 6000
        assert report["cash_sales"] == 5290
        assert report["open_bills"] == 1
        assert report["hourly_entries"] == {"20時": 1, "21時": 1, "22時": 1}
        assert report["is_weekend_holiday"] is False
        assert report["bonus_qualified"] is False
        assert report["bonus_tier"] == 0
        assert report["bonus_per_point"] == 0

    def test_store_sales_matches_report(self, store, day_of_bills):
        assert reporting_service.store_sales(store.id, BUSINESS_DAY) == 14890

    def test_other_days_and_stores_are_separate(self, store, other_store, day_of_bills):
        next_day = reporting_service.daily_report(store_id=store.id, business_date=BUSINESS_DAY + timedelta(days=1))
        assert next_day["groups"] == 0
        assert next_day["sales"] == 0
        assert next_day["avg_per_customer"] == 0

        elsewhere = reporting_service.daily_report(store_id=other_store.id, business_date=BUSINESS_DAY)
        assert elsewhere["groups"] == 0

    def test_bonus_tier_on_qualifying_day(self, db_session, store, table):
        bottle = Product(name_jp="アルマンド", category="bottles", price=350000, points=10)
        db_session.add(bottle)
        db_session.commit()

        bill = billing_service.start_session(table_id=table.id, now=jst(BUSINESS_DAY, 20))
        billing_service.add_order(bill_id=bill.id, product_id=bottle.id)

        report = reporting_service.daily_report(store_id=store.id, business_date=BUSINESS_DAY)
        assert report["sales"] == 420000
        assert report["bonus_qualified"] is True
        assert report["bonus_tier"] == 1
        assert report["bonus_per_point"] == 200

    def test_unknown_store(self, db_session):
        with pytest.raises(ReportError, match="Store not found"):
            reporting_service.daily_report(store_id=99999, business_date=BUSINESS_DAY)


class TestSessionLog:
    def test_entries(self, store, day_of_bills):
        log = reporting_service.session_log(store_id=store.id, business_date=BUSINESS_DAY)

        assert [e["id"] for e in log] == [
            day_of_bills["card"].id,
            day_of_bills["cash"].id,
            day_of_bills["open"].id,
        ]

        card, cash, still_open = log
        assert card["table_label"] == "T1"
        assert card["status"] == "closed"
        assert card["payment_method"] == "card"
        assert card["base_charge"] == 4000
        assert card["extensions"] == []
        assert card["total"] == 6000
        assert card["total_label"] == "¥6,000"
        assert card["start_label"] == "20:00"
        assert card["start_time"].endswith("Z")

        assert cash["notes"] == "常連"
        assert cash["total"] == 5290

        assert still_open["status"] == "open"
        assert still_open["close_time"] is None
        assert still_open["base_charge"] == 0
        assert still_open["extensions"] == [{"minutes": 40, "tier": "free"}]


class TestDailySnapshots:
    def test_save_overwrites_same_day(self, db_session, store, table, menu, staff, day_of_bills):
        first = reporting_service.save_daily_report(store_id=store.id, business_date=BUSINESS_DAY, staff_id=staff.id)
        assert first.total_sales == 14890
        assert first.total_bills == 3

        billing_service.close_bill(bill_id=day_of_bills["open"].id, payment_method="qr")
        second = reporting_service.save_daily_report(store_id=store.id, business_date=BUSINESS_DAY)

        assert second.id == first.id
        assert second.card_sales == 6000 + 3600
        assert db_session.query(DailyReport).filter_by(store_id=store.id).count() == 1

    def test_saved_reports_newest_first(self, store, day_of_bills):
        reporting_service.save_daily_report(store_id=store.id, business_date=BUSINESS_DAY - timedelta(days=1))
        reporting_service.save_daily_report(store_id=store.id, business_date=BUSINESS_DAY)

        rows = reporting_service.saved_reports(store_id=store.id)
        assert [r.report_date for r in rows] == [BUSINESS_DAY, BUSINESS_DAY - timedelta(days=1)]
        assert rows[1].total_sales == 0
        assert reporting_service.saved_reports(store_id=store.id, limit=1)[0].report_date == BUSINESS_DAY

    def test_unknown_store(self, db_session):
        with pytest.raises(ReportError):
            reporting_service.saved_reports(store_id=99999)
