from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from eventcredits.core.database import Base, make_engine
from eventcredits.models.credit import Credit
from eventcredits.models.eligible_user import EligibleUser
from eventcredits.services.allocation import AlreadyClaimed, PoolExhausted, claim_credit, revoke_credit


def main() -> None:
    engine = make_engine("sqlite:///:memory:")
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        start = datetime.now(timezone.utc)
        db.add_all(
            [
                Credit(code="LATE", link="https://cursor.com/referral?code=LATE", created_at=start + timedelta(minutes=5)),
                Credit(code="EARLY", link="https://cursor.com/referral?code=EARLY", created_at=start),
                Credit(code="QA", link="https://cursor.com/referral?code=QA", test=True, created_at=start),
            ]
        )
        db.add_all(
            [
                EligibleUser(email="a@x.com", name="A", approval_status="approved"),
                EligibleUser(email="b@x.com", name="B", approval_status="approved"),
                EligibleUser(email="c@x.com", name="C", approval_status="approved"),
            ]
        )
        db.commit()
        a, b, c = [u.id for u in db.query(EligibleUser).order_by(EligibleUser.email).all()]

        first = claim_credit(db, a, test=False)
        assert first.code == "EARLY", first

        try:
            claim_credit(db, a, test=False)
            raise AssertionError("second claim should fail")
        except AlreadyClaimed as e:
            assert e.allocation is not None and e.allocation.code == "EARLY", e.allocation

        assert claim_credit(db, b, test=True).code == "QA"
        assert claim_credit(db, c, test=False).code == "LATE"

        released = revoke_credit(db, a)
        assert released is not None and released.code == "EARLY", released
        assert claim_credit(db, a, test=False).code == "EARLY"

        try:
            claim_credit(db, b, test=False)
            raise AssertionError("claimed user must not draw again")
        except AlreadyClaimed:
            pass

        revoke_credit(db, c)
        revoke_credit(db, a)
        claim_credit(db, a, test=False)
        claim_credit(db, c, test=False)
        try:
            revoke_credit(db, b)
            claim_credit(db, b, test=False)
            raise AssertionError("real pool should be empty")
        except PoolExhausted:
            pass

        used = db.query(Credit).filter(Credit.used.is_(True)).count()
        claimed = db.query(EligibleUser).filter(EligibleUser.claimed.is_(True)).count()
        assert used == claimed == 2, (used, claimed)
    finally:
        db.close()


if __name__ == "__main__":
    main()
    print("OK")
