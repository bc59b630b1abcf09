#!/usr/bin/env python3
"""Seed the database with staff accounts, massage services and opening hours."""
import sys
from pathlib import Path

# Add the parent directory to the path so we can import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from salon_booking import create_app, db
from salon_booking.auth import issue_token
from salon_booking.models import Service, User, WeeklyAvailability

STAFF = [
    {"email": "admin@salon.example", "first_name": "Claire", "last_name": "Dubois", "role": "ADMIN"},
    {"email": "pro@salon.example", "first_name": "Lucas", "last_name": "Moreau", "role": "PRO"},
    {"email": "client@salon.example", "first_name": "Emma", "last_name": "Bernard", "role": "USER"},
]

SERVICES = [
    {
        "name": "Massage relaxant",
        "description": "Full body massage with warm oils to release tension",
        "duration_minutes": 60,
        "price_cents": 7000,  # 70.00 EUR
    },
    {
        "name": "Massage deep tissue",
        "description": "Slow, firm pressure on the deeper muscle layers",
        "duration_minutes": 90,
        "price_cents": 9500,  # 95.00 EUR
    },
    {
        "name": "Réflexologie plantaire",
        "description": "Pressure point work on the feet",
        "duration_minutes": 30,
        "price_cents": 4000,  # 40.00 EUR
    },
]

# Tuesday to Saturday, closed for lunch
OPENING_HOURS = [
    (day, start, end)
    for day in ("TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY")
    for start, end in (("09:00", "12:30"), ("14:00", "19:00"))
]

def seed_demo():
    """Insert demo rows that are not there yet."""
    app = create_app()

    with app.app_context():
        db.create_all()

        for data in STAFF:
            user = User.query.filter_by(email=data["email"]).first()
            if user:
                print(f"⏭️  {data['email']} already exists. Skipping...")
            else:
                user = User(**data)
                db.session.add(user)
                db.session.flush()
                print(f"  ✓ Added {data['role']}: {data['email']}")
            print(f"    token: {issue_token(user)}")

        for order, data in enumerate(SERVICES):
            if Service.query.filter_by(name=data["name"]).first():
                print(f"⏭️  Service {data['name']} already exists. Skipping...")
                continue
            db.session.add(Service(display_order=order, **data))
            print(f"  ✓ Added: {data['name']} ({data['price_cents']/100:.2f} EUR)")

        for day, start, end in OPENING_HOURS:
            exists = WeeklyAvailability.query.filter_by(
                day_of_week=day, start_time=start, end_time=end
            ).first()
            if not exists:
                db.session.add(WeeklyAvailability(day_of_week=day, start_time=start, end_time=end))

        db.session.commit()
        print("\n✅ Demo data seeded successfully!")
        print(f"📊 Services: {Service.query.count()}, opening windows: {WeeklyAvailability.query.count()}")

if __name__ == "__main__":
    seed_demo()
