# Overview: Pytest coverage for the table clock, extension preview window and designation upgrade rule.

from datetime import datetime, timedelta

import pytest

from fairy.engine import (
    build_bill_total_view,
    elapsed_minutes,
    evaluate_designation_upgrade,
    extension_minutes_accrued,
    format_jpy,
    format_minutes,
    format_start_time,
    format_work_time,
    remaining_minutes,
    should_show_extension_preview,
)
from fairy.engine.errors import InvalidInputError
from fairy.engine.types import BillState, OrderLine


START = datetime(2026, 10, 14, 11, 0)


class TestClock:
    def test_elapsed_is_floored_minutes(self):
        assert elapsed_minutes(START + timedelta(minutes=12, seconds=59), START) == 12

    def test_remaining_is_signed(self):
        assert remaining_minutes(60, 70) == -10
        assert format_minutes(-10) == "-10分"
        assert format_minutes(5) == "5分"

    def test_display_helpers(self):
        assert format_jpy(18500) == "¥18,500"
        assert format_work_time(392) == "6時間32分"
        # 11:00 UTC is 20:00 JST
        assert format_start_time(START) == "20:00"

    def test_preview_window(self):
        assert should_show_extension_preview(5)
        assert should_show_extension_preview(-3)
        assert not should_show_extension_preview(6)

    def test_extension_minutes_skip_cancelled_lines(self):
        lines = [
            OrderLine(unit_price=3000, quantity=1, category="extension", extension_minutes=40),
            OrderLine(unit_price=2000, quantity=2, category="extension", extension_minutes=20),
            OrderLine(unit_price=2000, quantity=1, category="extension", extension_minutes=20, is_cancelled=True),
            OrderLine(unit_price=4000, quantity=1, category="set"),
        ]
        assert extension_minutes_accrued(lines) == 80

    def test_extension_line_without_minutes_rejected(self):
        with pytest.raises(InvalidInputError):
            extension_minutes_accrued([OrderLine(unit_price=3000, quantity=1, category="extension")])

    def test_naive_timestamps_required(self):
        with pytest.raises(InvalidInputError):
            elapsed_minutes("2026-10-14T11:00:00", START)


class TestDesignationUpgrade:
    def test_third_extension_upgrades_free_bill(self):
        first = evaluate_designation_upgrade("free", 1, False)
        second = evaluate_designation_upgrade("free", 2, False)
        third = evaluate_designation_upgrade("free", 3, False)

        assert not first.designate_pair and not first.upgrade_bill
        assert not second.designate_pair and not second.upgrade_bill
        assert third.designate_pair
        assert third.upgrade_bill
        assert third.new_seating_tier == "designated"

    def test_already_designated_pair_is_idempotent(self):
        decision = evaluate_designation_upgrade("designated", 4, True)
        assert not decision.designate_pair
        assert not decision.upgrade_bill
        assert decision.new_seating_tier == "designated"

    def test_inhouse_bill_keeps_tier_but_pair_flips(self):
        decision = evaluate_designation_upgrade("inhouse", 3, False)
        assert decision.designate_pair
        assert not decision.upgrade_bill
        assert decision.new_seating_tier == "inhouse"

    def test_unknown_tier_rejected(self):
        with pytest.raises(InvalidInputError):
            evaluate_designation_upgrade("vip", 3, False)


class TestBillTotalView:
    def test_view_combines_total_clock_and_preview(self):
        state = BillState(start_time=START, base_minutes=60, extension_minutes_accrued=0)
        lines = [OrderLine(unit_price=10000, quantity=1)]
        view = build_bill_total_view(state, lines, [], START + timedelta(minutes=57), 3000)

        assert view.current_total == 12000
        assert view.elapsed_minutes == 57
        assert view.remaining_minutes == 3
        assert view.show_extension_preview
        assert view.extension_preview_total == 15600
        assert view.display_total == 12000

    def test_display_total_surcharged_for_card(self):
        state = BillState(start_time=START, base_minutes=60, payment_method="card")
        lines = [OrderLine(unit_price=13750, quantity=1)]
        view = build_bill_total_view(state, lines, [], START, 3000)
        assert view.current_total == 16500
        assert view.display_total == 18200
