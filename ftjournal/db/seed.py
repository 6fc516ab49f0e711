"""Initial rows for a freshly created database."""

import time

from sqlmodel import Session, select

from ftjournal.db.models import Meta, Rule, SCHEMA_VERSION

# Opinionated defaults; users can edit later.
DEFAULT_RULES = [
    ("followed_plan", "Followed the trade plan"),
    ("waited_confirmation", "Waited for confirmation"),
    ("traded_in_session", "Traded in my intended session"),
    ("respected_risk", "Respected my risk limits"),
    ("no_revenge", "Avoided revenge trading"),
    ("no_fomo", "Avoided FOMO entries"),
    ("logged_immediately", "Logged the trade immediately"),
]


def seed_database(session: Session):
    """Write the meta row and default rules if they are missing."""
    if session.get(Meta, 1) is None:
        session.add(Meta(schema_version=SCHEMA_VERSION, created_at_utc=int(time.time() * 1000)))

    if session.exec(select(Rule)).first() is None:
        for i, (rule_id, label) in enumerate(DEFAULT_RULES):
            session.add(Rule(id=rule_id, label=label, sort_order=i))

    session.commit()
