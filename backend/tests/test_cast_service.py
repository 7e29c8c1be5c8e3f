# Overview: Pytest coverage for the cast roster: pay terms, referrer, activation and deletion.

import pytest

from fairy.models import CastMember, CastShift
from fairy.services import billing_service, cast_service, earnings_service
from fairy.services.cast_service import CastError, CastNotFoundError
from conftest import BUSINESS_DAY, jst


class TestCreateAndUpdate:
    def test_create_with_defaults(self, db_session, store):
        cast = cast_service.create_cast(name="  れな ", home_store_id=store.id)
        assert cast.name == "れな"
        assert cast.hourly_rate == 4000
        assert cast.transport_fee == 0
        assert cast.is_active

    def test_create_validation(self, db_session, cast_a):
        with pytest.raises(CastError):
            cast_service.create_cast(name="")
        with pytest.raises(CastError):
            cast_service.create_cast(name="x", hourly_rate=-1)
        with pytest.raises(CastError):
            cast_service.create_cast(name="x", transport_fee="500")
        with pytest.raises(CastError):
            cast_service.create_cast(name="x", home_store_id=99999)
        with pytest.raises(CastError):
            cast_service.create_cast(name="x", referred_by_id=99999)
        assert db_session.query(CastMember).count() == 1

    def test_update_pay_terms(self, db_session, cast_b):
        cast = cast_service.update_cast(cast_id=cast_b.id, changes={"hourly_rate": 3500, "transport_fee": 0})
        assert cast.hourly_rate == 3500
        assert cast.transport_fee == 0
        assert cast.name == "みく"

    def test_update_rejects_unknown_fields(self, db_session, cast_b):
        with pytest.raises(CastError):
            cast_service.update_cast(cast_id=cast_b.id, changes={"is_active": False})
        with pytest.raises(CastNotFoundError):
            cast_service.update_cast(cast_id=99999, changes={"name": "x"})


class TestReferrer:
    def test_referral_reaches_earnings(self, db_session, store, cast_a):
        recruit = cast_service.create_cast(name="新人", referred_by_id=cast_a.id)
        db_session.add(CastShift(
            cast_id=recruit.id,
            store_id=store.id,
            clock_in=jst(BUSINESS_DAY, 20),
            clock_out=jst(BUSINESS_DAY, 24),
            clock_in_status="approved",
        ))
        db_session.commit()

        earnings = earnings_service.cast_daily_earnings(cast_a.id, BUSINESS_DAY)
        assert earnings.referral_count == 1
        assert earnings.referral_bonus == 2000

    def test_referrer_rules(self, db_session, cast_a, cast_b):
        with pytest.raises(CastError):
            cast_service.update_cast(cast_id=cast_a.id, changes={"referred_by_id": cast_a.id})

        cast_service.set_cast_active(cast_id=cast_b.id, is_active=False)
        with pytest.raises(CastError):
            cast_service.update_cast(cast_id=cast_a.id, changes={"referred_by_id": cast_b.id})

        cast_service.set_cast_active(cast_id=cast_b.id, is_active=True)
        cast = cast_service.update_cast(cast_id=cast_a.id, changes={"referred_by_id": cast_b.id})
        assert cast.referred_by_id == cast_b.id
        cast = cast_service.update_cast(cast_id=cast_a.id, changes={"referred_by_id": None})
        assert cast.referred_by_id is None


class TestActivationAndDelete:
    def test_list_active_only(self, db_session, cast_a, cast_b):
        cast_service.set_cast_active(cast_id=cast_b.id, is_active=False)
        assert [c.id for c in cast_service.list_casts(include_inactive=False)] == [cast_a.id]
        assert [c.id for c in cast_service.list_casts()] == [cast_a.id, cast_b.id]

    def test_delete_without_history(self, db_session, cast_b):
        cast_service.delete_cast(cast_id=cast_b.id)
        assert db_session.query(CastMember).filter_by(id=cast_b.id).first() is None

    def test_delete_with_history_refused(self, db_session, table, menu, cast_a):
        bill = billing_service.start_session(table_id=table.id, now=jst(BUSINESS_DAY, 20))
        billing_service.add_order(bill_id=bill.id, product_id=menu["drink_s"].id, cast_id=cast_a.id)

        with pytest.raises(CastError):
            cast_service.delete_cast(cast_id=cast_a.id)

        cast = cast_service.set_cast_active(cast_id=cast_a.id, is_active=False)
        assert not cast.is_active
