import unittest

from credit_fixtures import TempDatabase, add_credit, add_user

from eventcredits.models.credit import Credit
from eventcredits.models.eligible_user import EligibleUser
from eventcredits.services.allocation import PoolExhausted
from eventcredits.services.registration import NotApproved, NotEligible, register_attendee


TEST_COMPANY = "Test Company"


class TestRegisterAttendee(unittest.TestCase):
    def setUp(self):
        self.store = TempDatabase()
        self.db = self.store.session()

    def tearDown(self):
        self.db.close()
        self.store.dispose()

    def _register(self, email, name="Ana"):
        return register_attendee(self.db, name=name, email=email, test_company_name=TEST_COMPANY)

    def test_unknown_email_is_not_eligible(self):
        add_credit(self.db, "CODE1")
        with self.assertRaises(NotEligible) as ctx:
            self._register("nobody@x.com")
        self.assertEqual(ctx.exception.code, "NOT_ELIGIBLE")
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertFalse(self.db.query(Credit).one().used)

    def test_unapproved_user_gets_nothing(self):
        add_credit(self.db, "CODE1")
        for status in ("pending_approval", "declined", "waitlist", "invited"):
            with self.subTest(status=status):
                email = f"{status}@x.com"
                add_user(self.db, email, status=status)

                with self.assertRaises(NotApproved) as ctx:
                    self._register(email)

                self.assertEqual(ctx.exception.code, "NOT_APPROVED")
                self.assertEqual(ctx.exception.status, status)
                self.assertFalse(self.db.query(Credit).one().used)
                self.assertEqual(self.db.query(EligibleUser).filter(EligibleUser.claimed.is_(True)).count(), 0)
                self.db.rollback()

    def test_email_lookup_ignores_case_and_whitespace(self):
        add_credit(self.db, "CODE1")
        add_user(self.db, "a@x.com")

        result = self._register("  A@X.com ")

        self.assertFalse(result.is_existing)
        self.assertEqual(result.allocation.code, "CODE1")

    def test_repeat_registration_returns_same_credit(self):
        add_credit(self.db, "CODE1", "L1", minutes=1)
        add_credit(self.db, "CODE2", "L2", minutes=2)
        add_user(self.db, "a@x.com")

        first = self._register("a@x.com")
        second = self._register("a@x.com", name="Another Name")

        self.assertFalse(first.is_existing)
        self.assertTrue(second.is_existing)
        self.assertEqual(first.allocation.link, "L1")
        self.assertEqual(second.allocation.link, "L1")
        self.assertEqual(self.db.query(Credit).filter(Credit.used.is_(True)).count(), 1)
        # The name is only taken on the first, successful claim.
        self.assertEqual(self.db.query(EligibleUser).one().name, "Ana")

    def test_test_company_draws_from_test_pool(self):
        add_credit(self.db, "REAL1", minutes=1)
        add_credit(self.db, "TEST1", test=True, minutes=2)
        add_user(self.db, "qa@x.com", company=TEST_COMPANY)

        result = self._register("qa@x.com")

        self.assertTrue(result.allocation.test)
        self.assertEqual(result.allocation.code, "TEST1")
        real = self.db.query(Credit).filter(Credit.code == "REAL1").one()
        self.assertFalse(real.used)

    def test_company_match_is_exact(self):
        add_credit(self.db, "TEST1", test=True)
        add_user(self.db, "qa@x.com", company="test company")

        with self.assertRaises(PoolExhausted) as ctx:
            self._register("qa@x.com")
        self.assertFalse(ctx.exception.test)

    def test_registration_stores_submitted_name(self):
        add_credit(self.db, "CODE1")
        add_user(self.db, "a@x.com", name="Unknown")

        result = self._register("a@x.com", name="Ana Souza")

        self.assertEqual(result.allocation.name, "Ana Souza")
        self.db.expire_all()
        self.assertEqual(self.db.query(EligibleUser).one().name, "Ana Souza")


if __name__ == "__main__":
    unittest.main()
