"""
Unit tests for the swipe ledger.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import pharmalink.db.models  # noqa: F401  (registers every table)
from pharmalink.core.errors import ValidationError
from pharmalink.db.base import Base
from pharmalink.db.models.swipe import Swipe
from pharmalink.db.models.user import User
from pharmalink.services.swipe_service import (
    find_positive_swipe,
    get_swiped_target_ids,
    record_swipe,
)


TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def animator(db):
    user = User(full_name="Anna Animator", email="anna@example.com", user_type="animator")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def test_record_swipe_creates_row(db, animator):
    swipe = record_swipe(db, animator.id, "mission", 7, "like")
    assert swipe.action == "like"
    assert swipe.is_super_like is False
    assert swipe.super_liked_at is None


def test_reswipe_overwrites_in_place(db, animator):
    first = record_swipe(db, animator.id, "mission", 7, "like")
    second = record_swipe(db, animator.id, "mission", 7, "dislike")

    assert second.id == first.id
    assert second.action == "dislike"
    assert db.query(Swipe).count() == 1


def test_same_swipe_twice_is_idempotent(db, animator):
    record_swipe(db, animator.id, "mission", 7, "like")
    record_swipe(db, animator.id, "mission", 7, "like")
    assert db.query(Swipe).filter(Swipe.user_id == animator.id).count() == 1


def test_superlike_then_like_clears_flag(db, animator):
    superlike = record_swipe(db, animator.id, "mission", 7, "superlike")
    assert superlike.is_super_like is True
    assert superlike.super_liked_at is not None

    like = record_swipe(db, animator.id, "mission", 7, "like")
    assert like.is_super_like is False
    assert like.super_liked_at is None


def test_unknown_action_rejected(db, animator):
    with pytest.raises(ValidationError):
        record_swipe(db, animator.id, "mission", 7, "maybe")
    assert db.query(Swipe).count() == 0


def test_non_swipeable_target_rejected(db, animator):
    with pytest.raises(ValidationError):
        record_swipe(db, animator.id, "pharmacy_listing", 7, "like")


def test_find_positive_swipe_ignores_dislikes(db, animator):
    record_swipe(db, animator.id, "mission", 7, "dislike")
    assert find_positive_swipe(db, animator.id, "mission", 7) is None

    record_swipe(db, animator.id, "mission", 7, "superlike")
    assert find_positive_swipe(db, animator.id, "mission", 7).is_super_like is True


def test_swiped_target_ids(db, animator):
    record_swipe(db, animator.id, "mission", 1, "like")
    record_swipe(db, animator.id, "mission", 2, "dislike")
    record_swipe(db, animator.id, "job_offer", 3, "like")
    assert sorted(get_swiped_target_ids(db, animator.id, "mission")) == [1, 2]
