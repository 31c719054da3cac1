import unittest

from credit_fixtures import TempDatabase, add_credit, add_user

from eventcredits.models.credit import Credit
from eventcredits.models.eligible_user import EligibleUser
from eventcredits.services.importer import (
    decode_csv_bytes,
    extract_code,
    import_credits,
    import_users,
    read_rows,
    reset_store,
)


LINK_BASE = "https://cursor.com/referral"


class TestCsvHelpers(unittest.TestCase):
    def test_headers_are_normalized_and_blank_rows_dropped(self):
        rows = read_rows(" Email ,NAME\na@x.com, Ana \n,\n")
        self.assertEqual(rows, [{"email": "a@x.com", "name": "Ana"}])

    def test_empty_text(self):
        self.assertEqual(read_rows(""), [])

    def test_decode_strips_bom_and_falls_back_to_latin1(self):
        self.assertEqual(decode_csv_bytes("\ufefflink\n".encode("utf-8")), "link\n")
        self.assertEqual(decode_csv_bytes("name\nJos\xe9\n".encode("latin-1")), "name\nJos\xe9\n")

    def test_extract_code(self):
        self.assertEqual(extract_code("https://cursor.com/referral?code=ABC123&x=1"), "ABC123")
        self.assertEqual(extract_code("XYZ-789"), "XYZ789")


class TestImportCredits(unittest.TestCase):
    def setUp(self):
        self.store = TempDatabase()
        self.db = self.store.session()

    def tearDown(self):
        self.db.close()
        self.store.dispose()

    def test_imports_links_in_file_order(self):
        text = (
            "link\n"
            "https://cursor.com/referral?code=AAA111\n"
            "https://cursor.com/referral?code=BBB222\n"
        )

        report = import_credits(self.db, text, link_base=LINK_BASE)

        self.assertEqual((report.created, report.skipped, report.errors), (2, 0, []))
        credits = self.db.query(Credit).order_by(Credit.created_at.asc(), Credit.id.asc()).all()
        self.assertEqual([c.code for c in credits], ["AAA111", "BBB222"])
        self.assertTrue(all(not c.used and not c.test for c in credits))

    def test_bare_codes_become_links(self):
        report = import_credits(self.db, "code,link\nQWE987,QWE987\n", link_base=LINK_BASE + "/")
        self.assertEqual(report.created, 1)
        self.assertEqual(self.db.query(Credit).one().link, "https://cursor.com/referral?code=QWE987")

    def test_used_rows_and_duplicates_are_skipped(self):
        add_credit(self.db, "OLD111")
        text = (
            "url,status,test\n"
            "https://cursor.com/referral?code=OLD111,available,\n"
            "https://cursor.com/referral?code=NEW222,Taken,\n"
            "https://cursor.com/referral?code=NEW333,available,yes\n"
            "https://cursor.com/referral?code=NEW333,available,yes\n"
            ",available,\n"
        )

        report = import_credits(self.db, text, link_base=LINK_BASE)

        self.assertEqual(report.created, 1)
        self.assertEqual(report.skipped, 4)
        self.assertEqual(len(report.errors), 1)
        self.assertIn("line 6", report.errors[0])
        new = self.db.query(Credit).filter(Credit.code == "NEW333").one()
        self.assertTrue(new.test)
        self.assertFalse(new.used)


class TestImportUsers(unittest.TestCase):
    def setUp(self):
        self.store = TempDatabase()
        self.db = self.store.session()

    def tearDown(self):
        self.db.close()
        self.store.dispose()

    def test_imports_users_with_statuses(self):
        text = (
            "email,name,company,role,approval_status\n"
            "A@X.com,Ana,Acme,Engineer,approved\n"
            "b@x.com,,,,Pending Approval\n"
            "c@x.com,Caio,,,\n"
            "d@x.com,Duda,,,waitlist\n"
        )

        report = import_users(self.db, text)

        self.assertEqual((report.created, report.skipped), (4, 0))
        users = {u.email: u for u in self.db.query(EligibleUser).all()}
        self.assertEqual(users["a@x.com"].company, "Acme")
        self.assertEqual(users["a@x.com"].role, "Engineer")
        self.assertEqual(users["b@x.com"].name, "Unknown")
        self.assertEqual(users["b@x.com"].approval_status, "pending_approval")
        self.assertEqual(users["c@x.com"].approval_status, "approved")
        self.assertEqual(users["d@x.com"].approval_status, "waitlist")
        self.assertTrue(all(not u.claimed for u in users.values()))

    def test_invalid_and_duplicate_rows(self):
        add_user(self.db, "taken@x.com")
        text = (
            "email,name,approval_status\n"
            "taken@x.com,Again,approved\n"
            "new@x.com,New,approved\n"
            "NEW@x.com,Dup,approved\n"
            "no-at-sign,Bad,approved\n"
            "odd@x.com,Odd,vip\n"
        )

        report = import_users(self.db, text)

        self.assertEqual(report.created, 1)
        self.assertEqual(report.skipped, 4)
        self.assertEqual(len(report.errors), 2)
        self.assertEqual(self.db.query(EligibleUser).count(), 2)


class TestResetStore(unittest.TestCase):
    def test_reset_removes_everything(self):
        store = TempDatabase()
        db = store.session()
        try:
            add_credit(db, "CODE1")
            add_user(db, "a@x.com")
            reset_store(db)
            self.assertEqual(db.query(Credit).count(), 0)
            self.assertEqual(db.query(EligibleUser).count(), 0)
        finally:
            db.close()
            store.dispose()


if __name__ == "__main__":
    unittest.main()
