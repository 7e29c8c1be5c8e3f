# Overview: Pytest coverage for table sessions, orders, adjustments and the designation auto-upgrade.

"""
Billing Service Tests

- One open bill per table
- Captured price/back/points on orders
- Auto-upgrade on the 3rd designation extension for one (bill, cast) pair
- Cancellation keeps the row but drops it from totals
- Customer payload never exposes cast or commission data
"""

from datetime import timedelta

import pytest

from fairy.extensions import db
from fairy.models import ActivityEvent, Bill, BillDesignation, CastTableAssignment, Order
from fairy.services import billing_service
from fairy.services.billing_service import BillConflictError, BillNotFoundError, BillingError
from conftest import BUSINESS_DAY, jst


START = jst(BUSINESS_DAY, 20)


@pytest.fixture
def bill(db_session, table, staff):
    return billing_service.start_session(table_id=table.id, staff_id=staff.id, now=START)


class TestSessions:
    def test_start_session_opens_bill(self, db_session, table, staff):
        bill = billing_service.start_session(
            table_id=table.id, seating_type="inhouse", base_minutes=90, staff_id=staff.id, now=START
        )
        assert bill.status == "open"
        assert bill.store_id == table.store_id
        assert bill.seating_type == "inhouse"
        assert bill.base_minutes == 90
        assert len(bill.read_token) == 32

        events = db_session.query(ActivityEvent).filter_by(bill_id=bill.id).all()
        assert [e.event_type for e in events] == ["session_started"]

    def test_second_open_bill_on_table_rejected(self, bill, table, staff):
        with pytest.raises(BillConflictError):
            billing_service.start_session(table_id=table.id, staff_id=staff.id, now=START)

    def test_table_reusable_after_close(self, bill, table, staff):
        billing_service.close_bill(bill_id=bill.id, payment_method="cash", now=START + timedelta(hours=1))
        again = billing_service.start_session(table_id=table.id, staff_id=staff.id, now=START + timedelta(hours=2))
        assert again.id != bill.id

    def test_invalid_inputs(self, db_session, table):
        with pytest.raises(BillingError):
            billing_service.start_session(table_id=table.id, seating_type="vip")
        with pytest.raises(BillingError):
            billing_service.start_session(table_id=table.id, base_minutes=45)
        with pytest.raises(BillNotFoundError):
            billing_service.start_session(table_id=99999)

    def test_close_is_final(self, bill, menu):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id, now=START)
        closed = billing_service.close_bill(bill_id=bill.id, payment_method="card", now=START + timedelta(minutes=70))

        assert closed.status == "closed"
        assert closed.payment_method == "card"
        with pytest.raises(BillConflictError):
            billing_service.close_bill(bill_id=bill.id, payment_method="cash")
        with pytest.raises(BillConflictError):
            billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)

        view = billing_service.bill_total_view(closed, now=START + timedelta(hours=5))
        assert view.current_total == 4800
        assert view.display_total == 5300
        # Clock stopped at close_time
        assert view.elapsed_minutes == 70

    def test_close_rejects_unknown_payment_method(self, bill):
        with pytest.raises(BillingError):
            billing_service.close_bill(bill_id=bill.id, payment_method="tab")

    def test_cancel_session_voids_everything(self, db_session, bill, menu, cast_a, staff):
        billing_service.assign_cast(bill_id=bill.id, cast_id=cast_a.id, now=START)
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id, now=START)
        billing_service.add_order(bill_id=bill.id, product_id=menu["drink_s"].id, cast_id=cast_a.id, now=START)

        cancelled = billing_service.cancel_session(bill_id=bill.id, staff_id=staff.id, reason="wrong table")

        assert cancelled.is_cancelled
        assert cancelled.status == "closed"
        assert db_session.query(Order).filter_by(bill_id=bill.id, is_cancelled=False).count() == 0
        assert db_session.query(CastTableAssignment).filter_by(bill_id=bill.id, is_active=True).count() == 0


class TestOrders:
    def test_order_captures_price_back_and_points(self, db_session, bill, menu, cast_a):
        order, upgraded = billing_service.add_order(
            bill_id=bill.id, product_id=menu["moet"].id, cast_id=cast_a.id, now=START
        )
        assert not upgraded
        assert order.unit_price == 30000
        assert order.back_amount == 3000
        assert order.points_amount == 8

        # Later catalog edits never rewrite the captured values
        menu["moet"].price = 35000
        db_session.commit()
        assert billing_service.current_total(bill) == 36000

    def test_designated_bill_uses_designated_bottle_back(self, db_session, table, menu, cast_a):
        bill = billing_service.start_session(table_id=table.id, seating_type="designated", now=START)
        order, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["moet"].id, cast_id=cast_a.id)
        assert order.back_amount == 6000

    def test_quantity_validation(self, bill, menu):
        for bad in (0, -1, True, "2"):
            with pytest.raises(BillingError):
                billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id, quantity=bad)

    def test_inactive_and_unknown_products_rejected(self, bill, menu):
        with pytest.raises(BillingError):
            billing_service.add_order(bill_id=bill.id, product_id=menu["retired"].id)
        with pytest.raises(BillingError):
            billing_service.add_order(bill_id=bill.id, product_id=99999)

    def test_designation_extension_needs_cast(self, bill, menu):
        with pytest.raises(BillingError):
            billing_service.add_order(bill_id=bill.id, product_id=menu["ext_inhouse_20"].id)

    def test_unknown_bill(self, db_session, menu):
        with pytest.raises(BillNotFoundError):
            billing_service.add_order(bill_id=99999, product_id=menu["set"].id)

    def test_extensions_extend_the_clock(self, bill, menu, cast_a):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id, now=START)
        billing_service.add_order(bill_id=bill.id, product_id=menu["ext_free_40"].id, now=START)
        billing_service.add_order(
            bill_id=bill.id, product_id=menu["ext_inhouse_20"].id, quantity=2, cast_id=cast_a.id, now=START
        )

        view = billing_service.bill_total_view(bill, now=START + timedelta(minutes=150))
        assert view.total_minutes == 60 + 40 + 40
        assert view.remaining_minutes == -10
        assert view.show_extension_preview


class TestAutoUpgrade:
    def test_third_extension_upgrades_free_bill(self, db_session, bill, menu, cast_a):
        product_id = menu["ext_inhouse_20"].id

        first, up1 = billing_service.add_order(bill_id=bill.id, product_id=product_id, cast_id=cast_a.id, now=START)
        second, up2 = billing_service.add_order(bill_id=bill.id, product_id=product_id, cast_id=cast_a.id, now=START)
        assert not up1 and not up2
        assert db_session.get(Bill, bill.id).seating_type == "free"

        third, up3 = billing_service.add_order(bill_id=bill.id, product_id=product_id, cast_id=cast_a.id, now=START)
        assert up3
        refreshed = db_session.get(Bill, bill.id)
        assert refreshed.seating_type == "designated"

        designation = db_session.query(BillDesignation).filter_by(bill_id=bill.id, cast_id=cast_a.id).one()
        assert designation.extension_count == 3
        assert designation.is_designated
        assert designation.designated_at is not None

        types = [e.event_type for e in db_session.query(ActivityEvent).filter_by(bill_id=bill.id)]
        assert types.count("table_upgraded") == 1

    def test_upgrade_is_one_way_and_keeps_earlier_backs(self, db_session, bill, menu, cast_a, staff):
        moet, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["moet"].id, cast_id=cast_a.id)
        billing_service.add_order(
            bill_id=bill.id, product_id=menu["ext_designated_40"].id, quantity=3, cast_id=cast_a.id
        )
        assert db_session.get(Bill, bill.id).seating_type == "designated"
        assert db_session.get(Order, moet.id).back_amount == 3000

        after, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["moet"].id, cast_id=cast_a.id)
        assert after.back_amount == 6000

        # Cancelling extensions does not demote the table
        for order in db_session.query(Order).filter_by(bill_id=bill.id).all():
            if order.product.category == "extension":
                billing_service.cancel_order(order_id=order.id, staff_id=staff.id)
        assert db_session.get(Bill, bill.id).seating_type == "designated"

    def test_counters_are_per_cast(self, db_session, bill, menu, cast_a, cast_b):
        product_id = menu["ext_inhouse_20"].id
        for cast in (cast_a, cast_b, cast_a, cast_b):
            _, upgraded = billing_service.add_order(bill_id=bill.id, product_id=product_id, cast_id=cast.id)
            assert not upgraded
        assert db_session.get(Bill, bill.id).seating_type == "free"

    def test_free_extensions_do_not_count(self, db_session, bill, menu, cast_a):
        for _ in range(3):
            billing_service.add_order(bill_id=bill.id, product_id=menu["ext_free_40"].id, cast_id=cast_a.id)
        assert db_session.get(Bill, bill.id).seating_type == "free"
        assert db_session.query(BillDesignation).filter_by(bill_id=bill.id).count() == 0


class TestCancellation:
    def test_cancelled_order_excluded_but_kept(self, db_session, bill, menu, staff):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        bottle, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["moet"].id)

        cancelled = billing_service.cancel_order(order_id=bottle.id, staff_id=staff.id, reason="注文ミス")

        assert cancelled.is_cancelled
        assert cancelled.cancel_reason == "注文ミス"
        assert cancelled.cancelled_by_staff_id == staff.id
        assert billing_service.current_total(bill) == 4800
        assert db_session.query(Order).filter_by(bill_id=bill.id).count() == 2

    def test_double_cancel_rejected(self, bill, menu, staff):
        order, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.cancel_order(order_id=order.id, staff_id=staff.id)
        with pytest.raises(BillingError):
            billing_service.cancel_order(order_id=order.id, staff_id=staff.id)

    def test_orders_on_closed_bill_cannot_be_cancelled(self, bill, menu, staff):
        order, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.close_bill(bill_id=bill.id, payment_method="cash")
        with pytest.raises(BillConflictError):
            billing_service.cancel_order(order_id=order.id, staff_id=staff.id)


class TestAdjustments:
    def test_discount_applies_to_total(self, bill, menu, staff):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        adj = billing_service.add_adjustment(
            bill_id=bill.id, staff_id=staff.id, amount=-800, reason="常連割", adjustment_type="discount"
        )
        assert adj.amount == -800
        assert billing_service.current_total(bill) == 4000

    def test_adjustment_validation(self, bill, menu, staff):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        with pytest.raises(BillingError):
            billing_service.add_adjustment(bill_id=bill.id, staff_id=staff.id, amount=0, reason="x")
        with pytest.raises(BillingError):
            billing_service.add_adjustment(bill_id=bill.id, staff_id=staff.id, amount=-100, reason="  ")
        with pytest.raises(BillingError):
            billing_service.add_adjustment(
                bill_id=bill.id, staff_id=staff.id, amount=-100, reason="x", adjustment_type="gift"
            )

    def test_total_cannot_go_negative(self, db_session, bill, menu, staff):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        with pytest.raises(BillingError):
            billing_service.add_adjustment(bill_id=bill.id, staff_id=staff.id, amount=-5000, reason="too much")
        assert billing_service.current_total(bill) == 4800

    def test_cancel_that_would_leave_negative_total_rejected(self, db_session, bill, menu, staff):
        order, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.add_adjustment(bill_id=bill.id, staff_id=staff.id, amount=-4000, reason="サービス")

        with pytest.raises(BillingError):
            billing_service.cancel_order(order_id=order.id, staff_id=staff.id)

        db_session.refresh(order)
        assert not order.is_cancelled
        assert billing_service.current_total(bill) == 800
        closed = billing_service.close_bill(bill_id=bill.id, payment_method="cash")
        assert closed.status == "closed"


class TestSeating:
    def test_assign_is_idempotent(self, db_session, bill, cast_a):
        first = billing_service.assign_cast(bill_id=bill.id, cast_id=cast_a.id)
        second = billing_service.assign_cast(bill_id=bill.id, cast_id=cast_a.id)
        assert first.id == second.id
        assert db_session.query(CastTableAssignment).filter_by(bill_id=bill.id).count() == 1

    def test_unassign(self, bill, cast_a):
        billing_service.assign_cast(bill_id=bill.id, cast_id=cast_a.id)
        assignment = billing_service.unassign_cast(bill_id=bill.id, cast_id=cast_a.id)
        assert not assignment.is_active
        assert assignment.removed_at is not None
        with pytest.raises(BillingError):
            billing_service.unassign_cast(bill_id=bill.id, cast_id=cast_a.id)


class TestPaymentMethod:
    def test_card_figure_shown_while_open(self, db_session, store, bill, menu):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.add_order(bill_id=bill.id, product_id=menu["moet"].id)

        payload = billing_service.customer_bill_by_token(bill.read_token, now=START)
        assert payload["payment_method"] is None
        assert payload["display_total"] == 40800

        billing_service.set_customer_payment_method(read_token=bill.read_token, payment_method="card")

        payload = billing_service.customer_bill_by_token(bill.read_token, now=START)
        assert payload["payment_method"] == "card"
        assert payload["current_total"] == 40800
        assert payload["display_total"] == 44900

        summary = billing_service.floor_overview(store.id, now=START)[0]["bill"]
        assert summary["display_total"] == 44900
        assert db_session.query(ActivityEvent).filter_by(bill_id=bill.id, event_type="payment_method_set").count() == 1

    def test_switching_back_to_cash(self, bill, menu, cast_a):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.set_payment_method(bill_id=bill.id, payment_method="qr", cast_id=cast_a.id)
        billing_service.set_payment_method(bill_id=bill.id, payment_method="cash")
        assert billing_service.bill_total_view(bill, now=START).display_total == 4800

    def test_customer_cannot_pick_split(self, bill):
        with pytest.raises(BillingError):
            billing_service.set_customer_payment_method(read_token=bill.read_token, payment_method="split")
        billing_service.set_payment_method(bill_id=bill.id, payment_method="split")

    def test_closed_bill_is_final(self, bill):
        billing_service.close_bill(bill_id=bill.id, payment_method="cash")
        with pytest.raises(BillConflictError):
            billing_service.set_payment_method(bill_id=bill.id, payment_method="card")
        with pytest.raises(BillNotFoundError):
            billing_service.set_customer_payment_method(read_token=bill.read_token, payment_method="card")


class TestReadModels:
    def test_customer_payload_hides_staff_data(self, bill, menu, cast_a):
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.add_order(bill_id=bill.id, product_id=menu["moet"].id, cast_id=cast_a.id)

        payload = billing_service.customer_bill_by_token(bill.read_token, now=START + timedelta(minutes=10))

        assert payload["table_label"] == "T1"
        assert payload["current_total"] == 40800
        assert payload["remaining_minutes"] == 50
        assert payload["footer_note"] == "別途 税・サ20%"
        assert payload["accepted_payment_methods"] == ["cash", "card", "qr", "contactless"]
        assert set(payload["order_items"][0]) == {"name_jp", "quantity", "unit_price", "tax_applicable", "category"}
        assert "cast_name" not in str(payload)

    def test_customer_token_only_finds_open_bills(self, bill):
        billing_service.close_bill(bill_id=bill.id, payment_method="cash")
        with pytest.raises(BillNotFoundError):
            billing_service.customer_bill_by_token(bill.read_token)

    def test_customer_table_lookup(self, db_session, table, table2, staff):
        assert billing_service.customer_bill_by_table(table2.id) is None
        bill = billing_service.start_session(table_id=table.id, now=START)
        assert billing_service.customer_bill_by_table(table.id, now=START)["table_id"] == bill.table_id
        with pytest.raises(BillNotFoundError):
            billing_service.customer_bill_by_table(99999)

    def test_floor_overview(self, db_session, store, table, table2, menu, cast_a):
        bill = billing_service.start_session(table_id=table.id, now=START)
        billing_service.assign_cast(bill_id=bill.id, cast_id=cast_a.id)
        billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.add_order(bill_id=bill.id, product_id=menu["ext_free_40"].id)

        rows = {r["label"]: r for r in billing_service.floor_overview(store.id, now=START + timedelta(minutes=30))}

        assert rows["T2"]["bill"] is None
        summary = rows["T1"]["bill"]
        assert summary["current_total"] == 8400
        assert summary["remaining_minutes"] == 70
        assert summary["remaining_label"] == "70分"
        assert summary["order_count"] == 2
        assert summary["extension_count"] == 1
        assert [c["cast_id"] for c in summary["casts"]] == [cast_a.id]

    def test_bill_detail_lists_cancelled_orders(self, bill, menu, staff):
        order, _ = billing_service.add_order(bill_id=bill.id, product_id=menu["set"].id)
        billing_service.cancel_order(order_id=order.id, staff_id=staff.id)

        detail = billing_service.bill_detail(bill, now=START)
        assert detail["orders"][0]["is_cancelled"]
        assert detail["totals"]["current_total"] == 0
