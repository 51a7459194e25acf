# scripts/setup/seed_db.py
"""
Insert the sample alerts straight into the database (no running server needed).
Safe to re-run: samples upsert on their alert ids.
Usage: python scripts/setup/seed_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from miles.config import settings
from miles.database import SessionLocal, create_tables
from miles.services.ingest_service import store_payload
from miles.services.payload_normalizer import utcnow
from miles.services.seed_samples import build_samples


def main():
    create_tables()
    db = SessionLocal()
    try:
        for sample in build_samples(utcnow(), settings.SHARED_SECRET):
            event = store_payload(db, sample)
            print(f"✅ {event.alert_type} → id={event.id} key={event.dedupe_key}")
    finally:
        db.close()
    print("🎉 Seeded sample events")


if __name__ == "__main__":
    main()
