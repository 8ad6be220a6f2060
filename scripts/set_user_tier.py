"""
Script to put a user on a given tier (admin override, no invoice, no expiry).
Run: python -m scripts.set_user_tier user@example.com pro
"""
import sys
import logging

from pharmalink.core.errors import PharmalinkError
from pharmalink.db.session import SessionLocal
from pharmalink.db.models.user import User
from pharmalink.services.subscription_service import set_tier

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def set_user_tier(email: str, tier: str) -> bool:
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.lower()).first()
        if not user:
            logger.error(f"User {email} not found")
            return False

        logger.info(f"Found existing user: {email} (ID: {user.id}, type: {user.user_type})")
        subscription = set_tier(db, user.id, tier)
        logger.info(f"Successfully set user {email} to {subscription.tier}")
        return True
    except PharmalinkError as e:
        logger.error(f"Could not set tier for {email}: {e.message}")
        return False
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("Usage: python -m scripts.set_user_tier <email> <tier>")
        sys.exit(2)

    email, tier = sys.argv[1], sys.argv[2]
    if set_user_tier(email, tier):
        print(f"\n[SUCCESS] User {email} is now on the {tier} tier")
    else:
        print(f"\n[ERROR] Failed to set tier for {email}")
        sys.exit(1)
