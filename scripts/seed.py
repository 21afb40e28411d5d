"""Seed a local database with staff, participants and sample queries.

Usage: python scripts/seed.py [--reset]
"""

import argparse
import os
import random
import sys

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from querydesk.application.services.auth_service import create_user
from querydesk.domain.models.query import Query, QueryStatus
from querydesk.domain.models.user import Role, User
from querydesk.domain.models.notification import Notification  # noqa: F401 (registers the table)
from querydesk.infrastructure.database import Base, SessionLocal, engine
from querydesk.infrastructure.repositories.query_repository import SQLAlchemyQueryRepository
from querydesk.infrastructure.repositories.user_repository import SQLAlchemyUserRepository

PASSWORD = "password123"
PARTICIPANT_NAMES = ["aadi", "aanya", "abhinav", "anushka", "ishan", "pratik", "soham", "ved"]
HEAD_NAMES = ["kamalesh", "parth"]
ADMIN_NAME = "zayed"

SAMPLE_QUERIES = [
    ("Registration payment not reflecting in dashboard",
     "I paid for the Hoverpod registration via UPI yesterday but my dashboard still shows 'Payment Pending'."),
    ("Hostel accommodation for team members",
     "Our team of 5 needs hostel rooms for 3 nights. Is bedding provided or should we bring our own?"),
    ("Hoverpod rulebook clarification",
     "Rule 4.3 caps thrust at 5N. Is that total thrust or per motor?"),
    ("Transportation from the railway station",
     "Our train arrives at 2:45 AM. Will shuttles be running at that time?"),
    ("Workshop certificate not received",
     "I attended the CAD workshop on January 20th but have not received my certificate yet."),
    ("WiFi access for Hackathon participants",
     "Will guest WiFi credentials be provided for the 24-hour hackathon?"),
]


def seed(reset: bool = False) -> None:
    if reset:
        print("Dropping existing tables...")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        users = SQLAlchemyUserRepository(db, User)
        queries = SQLAlchemyQueryRepository(db, Query)

        def ensure(name: str, role: Role) -> User:
            email = f"{name}@querydesk.dev"
            return users.get_by_email(email) or create_user(
                users, name=name.title(), email=email, password=PASSWORD, role=role, is_verified=True
            )

        ensure(ADMIN_NAME, Role.ADMIN)
        heads = [ensure(name, Role.TEAM_HEAD) for name in HEAD_NAMES]
        participants = [ensure(name, Role.PARTICIPANT) for name in PARTICIPANT_NAMES]

        rng = random.Random(42)
        for title, description in SAMPLE_QUERIES:
            author = rng.choice(participants)
            query = queries.create(
                {"title": title, "description": description, "created_by_id": author.id}
            )
            roll = rng.random()
            if roll < 0.25:
                continue
            head = rng.choice(heads)
            values = {"assigned_to_id": head.id, "status": QueryStatus.ASSIGNED}
            if roll > 0.6:
                values.update(
                    status=QueryStatus.RESOLVED,
                    answer="Thanks for reaching out, this has been sorted on our side.",
                    resolved_by_id=head.id,
                )
            queries.apply_transition(query.id, [QueryStatus.UNASSIGNED], values)

        print(f"Seeded {len(participants)} participants, {len(heads)} team heads, {len(SAMPLE_QUERIES)} queries.")
        print(f"All seeded accounts use the password '{PASSWORD}'.")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--reset", action="store_true", help="drop all tables before seeding")
    seed(parser.parse_args().reset)
