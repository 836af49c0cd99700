#!/usr/bin/env python3
"""
Script to seed the database with sample data for local development
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta
from replaycoach.database import init_db, drop_db, get_db
from replaycoach.models import Admin, AvailabilitySlot, BlogPost, FriendCode
from replaycoach.utils.security import hash_password


def create_slots(db):
    """Weekday evenings for live sessions, weekend afternoons for VOD reviews"""
    slots = []
    for day in range(1, 6):  # Monday - Friday
        slots.append(AvailabilitySlot(
            day_of_week=day,
            start_time='18:00',
            end_time='22:00',
            slot_duration=60,
            session_type='live-coaching'
        ))
    for day in (0, 6):
        slots.append(AvailabilitySlot(
            day_of_week=day,
            start_time='13:00',
            end_time='17:00',
            slot_duration=60,
            session_type='vod-review'
        ))
    db.add_all(slots)
    return slots


def create_blog_posts(db):
    now = datetime.utcnow()
    posts = [
        BlogPost(
            title='Five habits that hold Gold tanks back',
            slug='five-habits-gold-tanks',
            content=(
                "Most Gold tank replays share the same problems.\n\n"
                "1. Walking into the enemy team without cooldowns.\n"
                "2. Taking fights your supports cannot see.\n"
                "3. Ignoring off-angles after the first pick.\n"
                "4. Using barrier or matrix on a timer instead of on damage.\n"
                "5. Never checking the kill feed before re-engaging."
            ),
            excerpt='The patterns that show up in almost every Gold tank replay.',
            tags=['Tank', 'Fundamentals'],
            published=True,
            published_at=now - timedelta(days=3)
        ),
        BlogPost(
            title='How to pick replays worth reviewing',
            slug='picking-replays',
            content="Close losses teach more than stomps. Send the games you felt you could have won.",
            excerpt='Close losses teach more than stomps.',
            tags=['Replays'],
            published=True,
            published_at=now - timedelta(days=1)
        ),
        BlogPost(
            title='Draft: support positioning',
            slug='support-positioning',
            content='Work in progress.',
            tags=['Support'],
            published=False
        ),
    ]
    db.add_all(posts)
    return posts


def main():
    """Main seeding function"""
    print("Dropping existing database...")
    drop_db()

    print("Initializing new database...")
    init_db()

    # Use a single session for all operations
    with get_db() as db:
        print("Creating admin...")
        db.add(Admin(
            email='admin@replaycoach.gg',
            password_hash=hash_password('Admin123!'),
            name='Coach'
        ))

        print("Creating availability...")
        slots = create_slots(db)

        print("Creating friend code...")
        db.add(FriendCode(code='FRIEND2024', description='Sample friend code', max_uses=5))

        print("Creating blog posts...")
        posts = create_blog_posts(db)

    print("\nDatabase seeded successfully!")
    print("Created:")
    print("- 1 Admin (admin@replaycoach.gg / Admin123!)")
    print(f"- {len(slots)} Availability slots")
    print("- 1 Friend code (FRIEND2024, 5 uses)")
    print(f"- {len(posts)} Blog posts")


if __name__ == "__main__":
    main()
