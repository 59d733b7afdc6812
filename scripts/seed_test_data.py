"""Seed a demo business for local webhook testing.

Creates one restaurant with hours, FAQs, alert keywords and an online
ordering link, answering on TEST_BUSINESS_PHONE (the number to pass as
--to to scripts/test_webhook.py), plus a "Downtown" location answering on
TEST_LOCATION_PHONE with its own hours and manager.

Run this after creating the database schema with Alembic.

Usage:
    python scripts/seed_test_data.py
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.database import async_session_maker
from app.schemas.business import FAQ, BusinessCreate, BusinessUpdate
from app.schemas.location import LocationCreate
from app.services import business as business_service
from app.services import location as location_service

# Test data constants (matching test_webhook.py examples)
TEST_BUSINESS_PHONE = "+15550001111"
TEST_OWNER_PHONE = "+15550002222"
TEST_BUSINESS_NAME = "Joe's Pizza"
TEST_LOCATION_PHONE = "+15550005555"
TEST_MANAGER_PHONE = "+15550006666"


async def seed_data() -> None:
    """Create the demo business if it does not exist yet."""
    async with async_session_maker() as db:
        try:
            print("🌱 Starting test data seeding...")
            print("=" * 80)

            existing = await business_service.get_business_by_phone(db, TEST_BUSINESS_PHONE)
            if existing:
                print(f"✅ Business already exists: {existing.name} (ID: {existing.id})")
                return

            business = await business_service.create_business(
                db,
                BusinessCreate(
                    name=TEST_BUSINESS_NAME,
                    business_type="restaurant",
                    address="123 Main St",
                    public_phone=TEST_BUSINESS_PHONE,
                    owner_phone=TEST_OWNER_PHONE,
                    online_ordering_url="https://order.example.com/joes",
                    hours={
                        "Monday": "11am-10pm",
                        "Tuesday": "11am-10pm",
                        "Wednesday": "11am-10pm",
                        "Thursday": "11am-10pm",
                        "Friday": "11am-11pm",
                        "Saturday": "11am-11pm",
                    },
                    faqs=[
                        FAQ(question="Are you open on Sunday?", answer="Sorry, we're closed on Sundays."),
                        FAQ(question="Do you have gluten free", answer="Yes! Any pizza can be made on gluten free crust."),
                    ],
                ),
            )
            await business_service.update_business(
                db,
                business,
                BusinessUpdate(
                    twilio_phone=TEST_BUSINESS_PHONE,
                    custom_alert_keywords=["emergency", "sick", "allergic"],
                ),
            )
            location = await location_service.create_location(
                db,
                business.id,
                LocationCreate(
                    name="Downtown",
                    phone_number=TEST_LOCATION_PHONE,
                    address="1 Market St",
                    hours={"Friday": "11am-midnight", "Saturday": "11am-midnight"},
                    manager_name="Maria",
                    manager_phone=TEST_MANAGER_PHONE,
                ),
            )
            await db.commit()

            print(f"✅ Created business: {business.name} (ID: {business.id})")
            print(f"   Number: {TEST_BUSINESS_PHONE}")
            print(f"   Owner alerts go to: {TEST_OWNER_PHONE}")
            print(f"✅ Created location: {location.name} on {TEST_LOCATION_PHONE}")
            print(f"   Manager alerts go to: {TEST_MANAGER_PHONE}")
            print("=" * 80)
            print("Try: python scripts/test_webhook.py --sms 'Are you open on Sunday?' --to +15550001111")

        except Exception as e:
            print(f"❌ Error seeding data: {e}")
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(seed_data())
