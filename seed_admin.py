"""
Seed Admin Account
Registers (or promotes) the first admin. Every later role change goes
through the admin API.

Usage:
    python seed_admin.py admin@example.com "Admin Name"
"""
import asyncio
import os
import sys
from datetime import datetime
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

from app.database import ensure_indexes
from app.models.auth.user import UserCreate, UserRole
from app.services.auth.role_service import RoleService

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "contestsDB")


async def seed_admin(email: str, name: str = None):
    """Create the admin user, or promote an existing one"""
    print("=" * 60)
    print("Admin Account Seeder")
    print("=" * 60)

    # Connect to MongoDB
    client = AsyncIOMotorClient(MONGODB_URL)
    db = client[DATABASE_NAME]

    try:
        print("\n[1] Creating indexes...")
        await ensure_indexes(db)

        print("\n[2] Registering admin...")
        role_service = RoleService(db)
        user, created = await role_service.register(UserCreate(email=email, name=name))
        print(f"    [OK] {'Created' if created else 'Found existing'} user {user['email']}")

        await db.users.update_one(
            {"email": user["email"]},
            {"$set": {"role": UserRole.ADMIN.value, "updatedAt": datetime.utcnow()}}
        )
        print(f"    [OK] {user['email']} is now an admin")

        print("\n" + "=" * 60)
        print("Seeding complete!")
        print("=" * 60)

    finally:
        client.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    asyncio.run(seed_admin(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None))
