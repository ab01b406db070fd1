"""Load sample funko pops (and optionally a first admin) into the configured database."""

import argparse
import logging
import os

from config import Settings, configure_logging
from database import Database, connect
from schemas import FunkoPop, User
from security import pwd_context

logger = logging.getLogger(__name__)

SAMPLE_FUNKOPOPS = [
    {"title": "Marvel: WandaVision - Halloween Wanda", "price": 7.2, "description": "Funko pop of halloween wanda", "quantity": 100},
    {"title": "Marvel: Falcon - Halloween Falcon", "price": 8.9, "description": "Funko pop of halloween Falcon", "quantity": 40},
    {"title": "Star Wars: The Mandalorian with Grogu", "price": 14.99, "description": "Mandalorian carrying Grogu, 4 inch vinyl", "quantity": 25},
    {"title": "Harry Potter: Hermione with Wand", "price": 11.5, "description": "Hermione Granger casting a spell with her wand", "quantity": 60},
    {"title": "Disney: Stitch with Ukulele", "price": 9.99, "description": "Stitch playing the ukulele, flocked edition", "quantity": 0, "instock": False},
]


def seed_funkopops(db: Database, items=None) -> int:
    """Replace the catalog with the given items and return how many were inserted."""
    items = SAMPLE_FUNKOPOPS if items is None else items
    collection = db.db["funkopop"]
    collection.delete_many({})
    docs = [FunkoPop(**item).model_dump() for item in items]
    if docs:
        collection.insert_many(docs)
    logger.info("Seeded %d funko pops", len(docs))
    return len(docs)


def bootstrap_admin(db: Database, email: str, password: str) -> bool:
    """Create an admin account unless one exists already."""
    collection = db.db["user"]
    if collection.count_documents({"role": "admin"}) > 0:
        logger.info("Admin already exists, skipping bootstrap")
        return False
    user_doc = User(
        email=email.strip(),
        password_hash=pwd_context.hash(password),
        role="admin",
        active=True,
    ).model_dump()
    collection.insert_one(user_doc)
    logger.info("Created admin %s", email)
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-email", default=os.getenv("ADMIN_EMAIL"))
    parser.add_argument("--admin-password", default=os.getenv("ADMIN_PASSWORD"))
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    db = connect(settings)
    db.ensure_indexes()
    seed_funkopops(db)
    if args.admin_email and args.admin_password:
        bootstrap_admin(db, args.admin_email, args.admin_password)


if __name__ == "__main__":
    main()
