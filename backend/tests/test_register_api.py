import unittest

from fastapi.testclient import TestClient

from credit_fixtures import RecordingNotifier, TempDatabase, add_credit, add_user

from eventcredits.api.deps import get_notifier
from eventcredits.core.database import get_db
from eventcredits.main import app
from eventcredits.models.credit import Credit


class RegisterApiTestCase(unittest.TestCase):
    notifier_options: dict = {}

    def setUp(self):
        self.store = TempDatabase()
        self.db = self.store.session()
        self.notifier = RecordingNotifier(**self.notifier_options)
        app.dependency_overrides[get_db] = self.store.get_db
        app.dependency_overrides[get_notifier] = lambda: self.notifier
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.db.close()
        self.store.dispose()

    def register(self, email, name="Ana"):
        return self.client.post("/api/register", json={"name": name, "email": email})


class TestRegisterEndpoint(RegisterApiTestCase):
    def test_first_claim_then_repeat(self):
        add_credit(self.db, "CODE1", "L1")
        add_user(self.db, "a@x.com")

        first = self.register("a@x.com")
        self.assertEqual(first.status_code, 201)
        body = first.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["credit"], "L1")
        self.assertFalse(body["isTest"])
        self.assertTrue(body["emailSent"])
        self.assertNotIn("isExisting", body)
        self.assertEqual(body["user"]["email"], "a@x.com")
        self.assertEqual(body["user"]["name"], "Ana")

        second = self.register("a@x.com")
        self.assertEqual(second.status_code, 200)
        body = second.json()
        self.assertTrue(body["success"])
        self.assertTrue(body["isExisting"])
        self.assertEqual(body["credit"], "L1")
        self.assertNotIn("emailSent", body)

        # Only the first, fresh claim triggers an email.
        self.assertEqual(len(self.notifier.sent), 1)

    def test_email_carries_credit_details(self):
        add_credit(self.db, "CODE1", "L1")
        add_user(self.db, "a@x.com", company="Acme")

        resp = self.client.post("/api/register", json={"name": "Ana", "email": "A@x.com", "locale": "en"})

        self.assertEqual(resp.status_code, 201)
        sent = self.notifier.sent[0]
        self.assertEqual(sent.to, "a@x.com")
        self.assertEqual(sent.credit_code, "CODE1")
        self.assertEqual(sent.credit_link, "L1")
        self.assertEqual(sent.company, "Acme")
        self.assertEqual(sent.locale, "en")
        self.assertFalse(sent.is_test)

    def test_unrecognised_locale_falls_back(self):
        add_credit(self.db, "CODE1", "L1")
        add_user(self.db, "a@x.com")

        resp = self.client.post("/api/register", json={"name": "Ana", "email": "a@x.com", "locale": 5})

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(self.notifier.sent[0].locale, "pt-BR")

    def test_unknown_email(self):
        add_credit(self.db, "CODE1")
        resp = self.register("nobody@x.com")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "NOT_ELIGIBLE")
        self.assertFalse(resp.json()["success"])

    def test_not_approved(self):
        add_credit(self.db, "CODE1")
        add_user(self.db, "p@x.com", status="pending_approval")
        resp = self.register("p@x.com")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["code"], "NOT_APPROVED")
        self.assertEqual(self.notifier.sent, [])

    def test_no_credits(self):
        add_user(self.db, "a@x.com")
        resp = self.register("a@x.com")
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["code"], "NO_CREDITS")

    def test_test_user_gets_test_credit(self):
        add_credit(self.db, "REAL1", "LR", minutes=1)
        add_credit(self.db, "TEST1", "LT", test=True, minutes=2)
        add_user(self.db, "qa@x.com", company="Test Company")

        resp = self.register("qa@x.com")

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["credit"], "LT")
        self.assertTrue(resp.json()["isTest"])

    def test_validation_errors(self):
        cases = [
            ({"name": "", "email": "a@x.com"}, "Name is required"),
            ({"name": "Ana", "email": "not-an-email"}, "Invalid email"),
            ({"name": "x" * 201, "email": "a@x.com"}, "Name is too long"),
        ]
        for payload, message in cases:
            with self.subTest(message=message):
                resp = self.client.post("/api/register", json=payload)
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["code"], "VALIDATION_ERROR")
                self.assertEqual(resp.json()["error"], message)

    def test_missing_field_and_bad_body(self):
        resp = self.client.post("/api/register", json={"email": "a@x.com"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "VALIDATION_ERROR")

        resp = self.client.post(
            "/api/register", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Invalid request body")


class TestRegisterStats(RegisterApiTestCase):
    def test_public_stats(self):
        add_credit(self.db, "REAL1", minutes=1)
        add_credit(self.db, "REAL2", minutes=2)
        add_credit(self.db, "TEST1", test=True)
        add_user(self.db, "a@x.com")
        add_user(self.db, "b@x.com")
        add_user(self.db, "c@x.com", status="waitlist")
        self.register("a@x.com")

        body = self.client.get("/api/register").json()

        self.assertTrue(body["available"])
        self.assertEqual(body["remaining"], 1)
        self.assertEqual(body["stats"], {"totalEligible": 2, "claimed": 1, "pending": 1})

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})

    def test_empty_pool_is_unavailable(self):
        add_credit(self.db, "TEST1", test=True)
        body = self.client.get("/api/register").json()
        self.assertFalse(body["available"])
        self.assertEqual(body["remaining"], 0)


class TestRegisterWithFailingNotifier(RegisterApiTestCase):
    notifier_options = {"fail": True}

    def test_claim_survives_failed_send(self):
        add_credit(self.db, "CODE1", "L1")
        add_user(self.db, "a@x.com")

        resp = self.register("a@x.com")

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["credit"], "L1")
        self.assertEqual(len(self.notifier.sent), 1)
        self.db.expire_all()
        self.assertTrue(self.db.query(Credit).one().used)


class TestRegisterWithExplodingNotifier(RegisterApiTestCase):
    notifier_options = {"explode": True}

    def test_claim_survives_notifier_exception(self):
        add_credit(self.db, "CODE1", "L1")
        add_user(self.db, "a@x.com")

        resp = self.register("a@x.com")

        self.assertEqual(resp.status_code, 201)
        self.assertEqual(len(self.notifier.sent), 1)
        self.db.expire_all()
        self.assertTrue(self.db.query(Credit).one().used)


if __name__ == "__main__":
    unittest.main()
