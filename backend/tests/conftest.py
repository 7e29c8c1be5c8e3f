"""
Pytest fixtures for fairy backend tests.

Provides test database setup, a seeded store/floor/menu, staff and cast
members, and a test client.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest
from fairy import create_app
from fairy.extensions import db
from fairy.models import Store, FloorTable, Product, CastMember, StaffMember
from fairy.time_utils import JST


# Wednesday; neither a holiday nor the eve of one.
BUSINESS_DAY = date(2026, 10, 14)


def jst(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC-naive timestamp for HH:MM JST on a business day (hour may run past 24)."""
    local = datetime.combine(day, time(0, 0), tzinfo=JST) + timedelta(hours=hour, minutes=minute)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def staff_headers(staff) -> dict:
    return {"X-Staff-Id": str(staff.id)}


def cast_headers(cast) -> dict:
    return {"X-Cast-Id": str(cast.id)}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'EXTENSION_PREVIEW_PRICE': 3000,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        db.session.rollback()
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store(db_session):
    store = Store(name="Fairy 本店")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def other_store(db_session):
    store = Store(name="Fairy 二号店")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def table(db_session, store):
    t = FloorTable(store_id=store.id, label="T1", seats=4)
    db_session.add(t)
    db_session.commit()
    return t


@pytest.fixture(scope='function')
def table2(db_session, store):
    t = FloorTable(store_id=store.id, label="T2", seats=4)
    db_session.add(t)
    db_session.commit()
    return t


@pytest.fixture(scope='function')
def other_table(db_session, other_store):
    t = FloorTable(store_id=other_store.id, label="A1", seats=4)
    db_session.add(t)
    db_session.commit()
    return t


@pytest.fixture(scope='function')
def menu(db_session):
    """Menu keyed by short name."""
    rows = {
        "set": Product(name_jp="セット料金 60分", category="set", price=4000),
        "ext_free_40": Product(
            name_jp="フリー延長 40分", category="extension", price=3000,
            extension_minutes=40, extension_tier="free",
        ),
        "ext_inhouse_20": Product(
            name_jp="場内延長 20分", category="extension", price=2000,
            back_free=500, back_designated=500,
            extension_minutes=20, extension_tier="inhouse",
        ),
        "ext_designated_40": Product(
            name_jp="本指名延長 40分", category="extension", price=5000,
            back_free=2000, back_designated=2000,
            extension_minutes=40, extension_tier="designated",
        ),
        "drink_s": Product(
            name_jp="キャストドリンク S", category="drinks", price=1000,
            back_free=500, back_designated=500, drink_size="S", drink_units=1,
        ),
        "drink_l": Product(
            name_jp="キャストドリンク L", category="drinks", price=3000,
            back_free=1500, back_designated=1500, drink_size="L", drink_units=3,
        ),
        "cafe_de_paris": Product(
            name_jp="カフェ・ド・パリ", category="bottles", price=15000,
            back_free=1500, back_designated=3000, points=4,
        ),
        "moet": Product(
            name_jp="モエ・エ・シャンドン", category="bottles", price=30000,
            back_free=3000, back_designated=6000, points=8,
        ),
        "water": Product(name_jp="ミネラルウォーター", category="drinks", price=500, tax_applicable=False),
        "retired": Product(name_jp="旧セット", category="set", price=3000, is_active=False),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return rows


@pytest.fixture(scope='function')
def staff(db_session, store):
    member = StaffMember(name="ボーイ", store_id=store.id, is_manager=False)
    db_session.add(member)
    db_session.commit()
    return member


@pytest.fixture(scope='function')
def manager(db_session, store):
    member = StaffMember(name="店長", store_id=store.id, is_manager=True)
    db_session.add(member)
    db_session.commit()
    return member


@pytest.fixture(scope='function')
def cast_a(db_session, store):
    cast = CastMember(name="あい", home_store_id=store.id, hourly_rate=4000, transport_fee=0)
    db_session.add(cast)
    db_session.commit()
    return cast


@pytest.fixture(scope='function')
def cast_b(db_session, store):
    cast = CastMember(name="みく", home_store_id=store.id, hourly_rate=3000, transport_fee=1000)
    db_session.add(cast)
    db_session.commit()
    return cast
