"""
Database seeding script for local development.

Creates a demo organization, a driver, a rider and two routes with
scheduled stops, then prints bearer tokens for the two users.
Run this script after the database is reachable.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shuttle_backend.app.db.session import AsyncSessionLocal, engine, Base
from shuttle_backend.app.core.jwt import create_access_token
from shuttle_backend.app.models.organization import Organization
from shuttle_backend.app.models.user import User
from shuttle_backend.app.models.route import Route
from shuttle_backend.app.models.route_stop import RouteStop  # noqa: F401
from shuttle_backend.app.models.route_session import RouteSession  # noqa: F401
from shuttle_backend.app.models.route_session_location import RouteSessionLocation  # noqa: F401
from shuttle_backend.app.models.audit_log import AuditLog  # noqa: F401
from shuttle_backend.app.models.enums import UserRole
from shuttle_backend.app.services.route_sessions import create_route, create_route_stop
from sqlalchemy import select


DEMO_ROUTES = {
    ("Main Campus Loop", "SHUTTLE-001"): [
        ("Main Entrance", 39.7817, -89.6501, 0),
        ("Student Center", 39.7835, -89.6478, 5),
        ("Library", 39.7852, -89.6460, 10),
        ("Cafeteria", 39.7840, -89.6432, 15),
    ],
    ("West Campus Express", "SHUTTLE-002"): [
        ("West Gate", 39.7801, -89.6589, 0),
        ("Engineering Building", 39.7812, -89.6563, 4),
        ("Research Center", 39.7829, -89.6541, 9),
        ("Parking Garage B", 39.7846, -89.6522, 13),
        ("Athletics Complex", 39.7860, -89.6507, 18),
    ],
}


def _token_for(user: User) -> str:
    return create_access_token(data={
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.value,
        "organization_id": user.organization_id,
    })


async def seed_demo():
    """
    Seed demo data.
    
    Creates:
    - 1 organization (Springfield University)
    - 1 DRIVER user (dev-driver) and 1 RIDER user (dev-rider)
    - 2 routes with scheduled stops
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        print("🌱 Starting demo seeding...")
        
        result = await db.execute(select(User).where(User.id == "dev-driver"))
        if result.scalar_one_or_none():
            print("ℹ️  Demo data already exists, skipping seeding")
            return
        
        org = Organization(name="Springfield University", type="campus")
        db.add(org)
        await db.flush()
        
        driver = User(
            id="dev-driver",
            name="John Smith",
            email="driver@springfield.edu",
            role=UserRole.DRIVER,
            organization_id=org.id,
            is_active=True
        )
        rider = User(
            id="dev-rider",
            name="Emma Davis",
            email="rider@springfield.edu",
            role=UserRole.RIDER,
            organization_id=org.id,
            is_active=True
        )
        db.add_all([driver, rider])
        await db.commit()
        print("✅ Created organization, driver and rider")
        
        for (name, vehicle_number), stops in DEMO_ROUTES.items():
            route: Route = await create_route(db, org.id, name, vehicle_number=vehicle_number)
            for order_index, (stop_name, lat, lng, minutes) in enumerate(stops, start=1):
                await create_route_stop(
                    db, route.id, stop_name, order_index,
                    scheduled_arrival_minutes=minutes, latitude=lat, longitude=lng
                )
            print(f"✅ Created route {name} ({len(stops)} stops) id={route.id}")
        
        print("\n🎉 Demo seeding completed successfully!")
        print("\nBearer tokens:")
        print(f"  - DRIVER: {_token_for(driver)}")
        print(f"  - RIDER:  {_token_for(rider)}")


if __name__ == "__main__":
    asyncio.run(seed_demo())
