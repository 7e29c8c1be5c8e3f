import unittest

from fairy import create_app
from fairy.extensions import db
from fairy.models import StaffMember, Store, StoreSetting
from fairy.engine.types import SettingsMap
from fairy.services import settings_service
from fairy.services.settings_service import SettingsValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": True,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(StoreSetting).delete()
        db.session.query(StaffMember).delete()
        db.session.query(Store).delete()
        db.session.commit()

        self.store = Store(name="Main")
        db.session.add(self.store)
        db.session.flush()

        self.manager = StaffMember(name="店長", store_id=self.store.id, is_manager=True)
        db.session.add(self.manager)
        db.session.commit()

    def test_empty_table_yields_defaults(self):
        settings = settings_service.load_settings()
        self.assertEqual(settings, SettingsMap())
        self.assertEqual(settings.bonus_threshold_weekday, 400_000)
        self.assertAlmostEqual(settings.tax_multiplier, 0.9)

    def test_stored_values_override_defaults(self):
        db.session.add(StoreSetting(key="welfare_fee", label="厚生費", value=1500))
        db.session.commit()

        settings = settings_service.load_settings()
        self.assertEqual(settings.welfare_fee, 1500)
        self.assertEqual(settings.referral_bonus, 2000)

    def test_unknown_keys_ignored(self):
        db.session.add(StoreSetting(key="legacy_flag", label="old", value=1))
        db.session.commit()

        self.assertEqual(settings_service.load_settings(), SettingsMap())

    def test_bad_row_skipped_others_kept(self):
        db.session.add(StoreSetting(key="welfare_fee", label="厚生費", value=-1))
        db.session.add(StoreSetting(key="tax_rate", label="源泉後支給率 (x100)", value=150))
        db.session.add(StoreSetting(key="late_pickup_bonus", label="送り遅れ時給加算", value=800))
        db.session.commit()

        settings = settings_service.load_settings()
        self.assertEqual(settings.welfare_fee, 1000)
        self.assertEqual(settings.tax_rate, 90)
        self.assertEqual(settings.late_pickup_bonus, 800)

    def test_update_creates_then_overwrites(self):
        row = settings_service.update_setting(key="late_pickup_bonus", value=700, staff_id=self.manager.id)
        self.assertEqual(row.value, 700)
        self.assertEqual(row.label, "送り遅れ時給加算")
        self.assertEqual(row.updated_by_staff_id, self.manager.id)

        settings_service.update_setting(key="late_pickup_bonus", value="800")
        self.assertEqual(db.session.query(StoreSetting).filter_by(key="late_pickup_bonus").count(), 1)
        self.assertEqual(settings_service.load_settings().late_pickup_bonus, 800)

    def test_validation(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.update_setting(key="no_such_key", value=1)
        with self.assertRaises(SettingsValidationError):
            settings_service.update_setting(key="welfare_fee", value=True)
        with self.assertRaises(SettingsValidationError):
            settings_service.update_setting(key="welfare_fee", value=12.5)
        with self.assertRaises(SettingsValidationError):
            settings_service.update_setting(key="welfare_fee", value=-1)
        with self.assertRaises(SettingsValidationError):
            settings_service.update_setting(key="tax_rate", value=120)
        with self.assertRaises(SettingsValidationError):
            settings_service.update_setting(key="bonus_increment", value=0)

        self.assertEqual(db.session.query(StoreSetting).count(), 0)

    def test_list_marks_defaults(self):
        settings_service.update_setting(key="referral_bonus", value=3000)
        items = {item["key"]: item for item in settings_service.list_settings()}

        self.assertEqual(set(items), set(SettingsMap.keys()))
        self.assertFalse(items["referral_bonus"]["is_default"])
        self.assertEqual(items["referral_bonus"]["value"], 3000)
        self.assertEqual(items["referral_bonus"]["default"], 2000)
        self.assertTrue(items["tax_rate"]["is_default"])
        self.assertIsNone(items["tax_rate"]["updated_at"])

    def test_seed_is_idempotent(self):
        self.assertEqual(settings_service.ensure_defaults_seeded(), len(SettingsMap.keys()))
        self.assertEqual(settings_service.ensure_defaults_seeded(), 0)
        self.assertEqual(settings_service.load_settings(), SettingsMap())


if __name__ == "__main__":
    unittest.main()
