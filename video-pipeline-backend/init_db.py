#!/usr/bin/env python3
"""
Database initialization script for Docker.
Creates tables if they don't exist and registers the known reference voices.
"""

import sys
from database import engine, Base, SessionLocal
from models import Job, VoiceClone  # noqa: F401 (registers the tables)

# (file name in the reference bucket, display name, transcript)
KNOWN_VOICE_CLONES = [
    ("denis.wav", "Denis", "Hi, this is derpflag testing voice cloning"),
    ("anas.wav", "Anas", ""),
]


def seed_voice_clones(db) -> int:
    """Insert the known voice clones that are not registered yet."""
    added = 0
    for file_name, display_name, transcript in KNOWN_VOICE_CLONES:
        if db.query(VoiceClone).filter(VoiceClone.file_name == file_name).first():
            continue
        db.add(VoiceClone(file_name=file_name, display_name=display_name, transcript=transcript))
        added += 1
    db.commit()
    return added


def init_database():
    """Initialize the database by creating all tables."""
    try:
        print("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            added = seed_voice_clones(db)
        finally:
            db.close()
        print(f"✅ Database tables created successfully! ({added} voice clones added)")
    except Exception as e:
        print(f"❌ Error creating database tables: {e}")
        sys.exit(1)


if __name__ == "__main__":
    init_database()
