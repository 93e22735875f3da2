import argparse
import os
import sys
import logging
import uuid

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select

from imagery.config.settings import Settings
from imagery.database import make_engine, make_session_factory
from imagery.models.profile import Profile, UserRole
from imagery.services.credits import add_credits

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def grant_credits(email: str, amount: int, admin: bool = False):
    settings = Settings()
    db = make_session_factory(make_engine(settings.database_url))()
    try:
        profile = db.execute(select(Profile).where(Profile.email == email)).scalars().first()
        if not profile:
            # Local accounts only; real profiles are created on first sign-in
            profile = Profile(id=uuid.uuid4(), email=email, credits=0)
            db.add(profile)
            db.commit()
            logger.info(f"Created profile for {email} ({profile.id})")

        if admin:
            profile.role = UserRole.ADMIN.value
        add_credits(db, profile.id, amount)
        db.commit()
        db.refresh(profile)
        logger.info(f"Added {amount} credits for {email}. New balance: {profile.credits}")

    except Exception as e:
        db.rollback()
        logger.error(f"Error granting credits: {str(e)}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Grant edit credits to a profile")
    parser.add_argument("email")
    parser.add_argument("--amount", type=int, default=5)
    parser.add_argument("--admin", action="store_true", help="also give the profile the admin role")
    args = parser.parse_args()
    grant_credits(args.email, args.amount, admin=args.admin)
