#!/usr/bin/env python3
"""Create the database tables and the default site settings row."""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from salon_booking import create_app
from salon_booking.extensions import db
from salon_booking.repository import get_site_settings

def init_database():
    app = create_app()
    with app.app_context():
        db.create_all()
        settings = get_site_settings()
        print("✅ Database tables initialized successfully")
        print(f"⚙️  Slot grid: {settings.slot_granularity_minutes} min, "
              f"lead time: {settings.min_lead_time_minutes} min")

if __name__ == "__main__":
    init_database()
