"""
Integration tests for the HTTP surface: auth, swipes, matches, fees, quotas.
"""
import pytest
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pharmalink.db.models  # noqa: F401  (registers every table)
from pharmalink.core.auth_dependency import get_db, get_notifier
from pharmalink.core.security import create_access_token
from pharmalink.db.base import Base
from pharmalink.db.models.listing import Mission
from pharmalink.db.models.user import User
from pharmalink.main import app
from pharmalink.services.notification_service import DatabaseNotifier


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override get_db dependency for testing."""
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


def override_get_notifier():
    return DatabaseNotifier(TestSessionLocal)


@pytest.fixture(scope="function", autouse=True)
def setup_db():
    """Create and drop tables for each test, with the app wired to the test database."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = override_get_notifier
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, user_type, email):
    user = User(full_name=email.split("@")[0].title(), email=email, user_type=user_type)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def lab(db_session):
    return make_user(db_session, "laboratory", "lab@example.com")


@pytest.fixture
def animator(db_session):
    return make_user(db_session, "animator", "anna@example.com")


@pytest.fixture
def mission(db_session, lab):
    mission = Mission(client_id=lab.id, title="Animation solaire", start_date=date(2026, 6, 1), end_date=date(2026, 6, 4))
    db_session.add(mission)
    db_session.commit()
    db_session.refresh(mission)
    return mission


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200


def test_requires_token(client):
    response = client.get("/me/usage")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_rejects_bad_token(client):
    response = client.get("/me/usage", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_unknown_user(client):
    response = client.get("/me/usage", headers={"Authorization": f"Bearer {create_access_token({'sub': 'ghost@example.com'})}"})
    assert response.status_code == 404


def test_usage_for_free_lab(client, lab):
    response = client.get("/me/usage", headers=auth_headers(lab))

    assert response.status_code == 200
    data = response.json()
    assert data["tier"] == "free"
    assert data["user_type"] == "laboratory"
    assert data["quotas"]["missions"] == {"allowed": True, "used": 0, "max": 1, "remaining": 1, "unlimited": False}
    assert data["quotas"]["contacts"]["allowed"] is False


def test_quota_endpoint(client, lab):
    response = client.get("/me/quota/super_likes_per_day", headers=auth_headers(lab))
    assert response.status_code == 200
    assert response.json()["max"] == 3

    response = client.get("/me/quota/nope", headers=auth_headers(lab))
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "validation_error"


def test_swipe_flow_to_match_and_notifications(client, lab, animator, mission):
    response = client.post(
        "/swipes",
        json={"target_type": "mission", "target_id": mission.id, "action": "like"},
        headers=auth_headers(animator),
    )
    assert response.status_code == 200
    assert response.json()["newly_matched"] is False
    assert response.json()["animator_match"]["status"] == "pending"

    response = client.post(
        "/swipes",
        json={"target_type": "animator", "target_id": animator.id, "action": "like", "context_id": mission.id},
        headers=auth_headers(lab),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["newly_matched"] is True
    assert data["animator_match"]["status"] == "matched"
    assert data["match"] is None

    response = client.get("/matches", headers=auth_headers(animator))
    assert response.json()["total"] == 1

    response = client.get("/notifications", headers=auth_headers(animator))
    assert response.json()["unread_count"] == 1
    assert response.json()["notifications"][0]["type"] == "new_match"

    response = client.post("/notifications/read", headers=auth_headers(animator))
    assert response.json() == {"updated": 1}


def test_superlike_limit_returns_402(client, animator, mission, db_session, lab):
    other = Mission(client_id=lab.id, title="Second", start_date=date(2026, 6, 1), end_date=date(2026, 6, 1))
    db_session.add(other)
    db_session.commit()

    first = client.post(
        "/swipes",
        json={"target_type": "mission", "target_id": mission.id, "action": "superlike"},
        headers=auth_headers(animator),
    )
    assert first.status_code == 200
    assert first.json()["quota"]["remaining"] == 0

    second = client.post(
        "/swipes",
        json={"target_type": "mission", "target_id": other.id, "action": "superlike"},
        headers=auth_headers(animator),
    )
    assert second.status_code == 402
    detail = second.json()["detail"]
    assert detail["error"] == "quota_exceeded"
    assert detail["limit_key"] == "super_likes_per_day"
    assert detail["next_tier"] == "premium"
    assert detail["remaining"] == 0


def test_swipe_validation_errors(client, lab, animator):
    response = client.post(
        "/swipes",
        json={"target_type": "animator", "target_id": animator.id, "action": "like"},
        headers=auth_headers(lab),
    )
    assert response.status_code == 400

    response = client.post(
        "/swipes",
        json={"target_type": "mission", "target_id": 1, "action": "wink"},
        headers=auth_headers(animator),
    )
    assert response.status_code == 422


def test_mission_fee_and_confirmation(client, lab, animator, mission):
    response = client.get(f"/missions/{mission.id}/fee", headers=auth_headers(lab))
    assert response.status_code == 200
    assert response.json()["amount"] == 15
    assert response.json()["included_in_subscription"] is False

    client.post(
        "/swipes",
        json={"target_type": "mission", "target_id": mission.id, "action": "like"},
        headers=auth_headers(animator),
    )
    client.post(
        "/swipes",
        json={"target_type": "animator", "target_id": animator.id, "action": "like", "context_id": mission.id},
        headers=auth_headers(lab),
    )

    response = client.post(f"/missions/{mission.id}/confirm", headers=auth_headers(lab))
    assert response.status_code == 200
    data = response.json()
    assert data["created"] is True
    assert data["fee"]["status"] == "pending"
    assert data["invoice"]["total"] == 15

    again = client.post(f"/missions/{mission.id}/confirm", headers=auth_headers(lab))
    assert again.json()["created"] is False

    invoices = client.get("/invoices", headers=auth_headers(lab)).json()
    assert invoices["total"] == 1
    invoice_id = invoices["invoices"][0]["id"]
    assert client.get(f"/invoices/{invoice_id}", headers=auth_headers(lab)).status_code == 200
    assert client.get(f"/invoices/{invoice_id}", headers=auth_headers(animator)).status_code == 404


def test_fee_for_unknown_mission(client, lab):
    response = client.get("/missions/999/fee", headers=auth_headers(lab))
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "not_found"


def test_favorites_limit_returns_402(client, lab):
    for animator_id in (11, 12, 13):
        response = client.post(
            "/favorites/toggle",
            json={"target_type": "animator", "target_id": animator_id},
            headers=auth_headers(lab),
        )
        assert response.json()["added"] is True

    response = client.post(
        "/favorites/toggle",
        json={"target_type": "animator", "target_id": 14},
        headers=auth_headers(lab),
    )
    assert response.status_code == 402
    assert response.json()["detail"]["limit_key"] == "favorites"

    listing = client.get("/favorites", headers=auth_headers(lab)).json()
    assert listing["total"] == 3
    assert listing["quota"]["remaining"] == 0


def test_subscription_upgrade(client, lab):
    tiers = client.get("/subscription/tiers", headers=auth_headers(lab)).json()
    assert [t["value"] for t in tiers["tiers"]] == ["free", "starter", "pro", "business"]

    response = client.post("/subscription/upgrade", json={"tier": "starter"}, headers=auth_headers(lab))
    assert response.status_code == 200
    assert response.json()["tier"] == "starter"

    status = client.get("/subscription", headers=auth_headers(lab)).json()
    assert status["tier"] == "starter"
    assert status["usage"]["quotas"]["contacts"]["max"] == 3

    response = client.post("/subscription/upgrade", json={"tier": "premium"}, headers=auth_headers(lab))
    assert response.status_code == 400

    response = client.post("/subscription/cancel", headers=auth_headers(lab))
    assert response.json()["auto_renew"] is False


def test_conflicts(client, lab, animator, mission):
    client.post(
        "/swipes",
        json={"target_type": "mission", "target_id": mission.id, "action": "like"},
        headers=auth_headers(animator),
    )
    client.post(
        "/swipes",
        json={"target_type": "animator", "target_id": animator.id, "action": "like", "context_id": mission.id},
        headers=auth_headers(lab),
    )

    response = client.get(
        "/matches/conflicts",
        params={"start_date": "2026-06-03", "end_date": "2026-06-10"},
        headers=auth_headers(animator),
    )
    assert response.status_code == 200
    assert response.json()["has_conflict"] is True
    assert response.json()["conflicts"][0]["mission_id"] == mission.id
