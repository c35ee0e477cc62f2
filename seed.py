import logging

from dotenv import load_dotenv

from app.config import settings
from app.database import Base, engine, SessionLocal
from app.models.user import AuthProvider, User
from app.services.credential_store import CredentialStore
from app.services.exceptions import AuthError
from app.services.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()


def run_seed():
    """Create the default email account when the users table is empty."""
    Base.metadata.create_all(bind=engine)

    if not settings.SEED_EMAIL or not settings.SEED_PASSWORD:
        logger.info("SEED_EMAIL/SEED_PASSWORD not set, skipping seeding.")
        return

    db = SessionLocal()
    try:
        if db.query(User).count() == 0:
            store = CredentialStore(db, PasswordHasher(settings))
            store.create_user(
                settings.SEED_EMAIL,
                settings.SEED_NAME,
                AuthProvider.email,
                settings.SEED_PASSWORD,
            )
            logger.info("Default account %s seeded", settings.SEED_EMAIL)
        else:
            logger.info("Users already present, skipping seeding.")
    except AuthError as exc:
        logger.error("Seeding error: %s", exc.message)
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_seed()
