import os
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from typing import Optional
from dotenv import load_dotenv
from pymongo import ASCENDING, DESCENDING

# Load environment variables
load_dotenv()


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """
    Create the indexes the services rely on.

    The unique indexes are the synchronization points for idempotent
    writes: one user per email, one creator request per email, one
    payment per transaction, one submission per (contest, participant).
    """
    # Users collection indexes
    try:
        await db.users.create_index([("email", ASCENDING)], unique=True)
        await db.users.create_index([("createdAt", DESCENDING)])
        print("[OK] Created indexes on users")
    except Exception as e:
        print(f"[WARN] Indexes on users may already exist: {e}")

    # Creator request indexes
    try:
        await db.creatorRequests.create_index([("email", ASCENDING)], unique=True)
        print("[OK] Created unique index on creatorRequests.email")
    except Exception as e:
        print(f"[WARN] Index on creatorRequests.email may already exist: {e}")

    # Payment indexes
    try:
        await db.payments.create_index([("transactionId", ASCENDING)], unique=True)
        await db.payments.create_index([("contestId", ASCENDING), ("participantEmail", ASCENDING)])
        await db.payments.create_index([("participantEmail", ASCENDING), ("paidAt", DESCENDING)])
        print("[OK] Created indexes on payments")
    except Exception as e:
        print(f"[WARN] Indexes on payments may already exist: {e}")

    # Submission indexes
    try:
        await db.submissions.create_index(
            [("contestId", ASCENDING), ("participantEmail", ASCENDING)],
            unique=True
        )
        print("[OK] Created unique index on submissions (contestId, participantEmail)")
    except Exception as e:
        print(f"[WARN] Index on submissions may already exist: {e}")

    # Contest indexes
    try:
        await db.contests.create_index([("status", ASCENDING), ("participantCount", DESCENDING)])
        await db.contests.create_index([("creator.email", ASCENDING)])
        await db.contests.create_index([("winner.email", ASCENDING)])
        print("[OK] Created indexes on contests")
    except Exception as e:
        print(f"[WARN] Indexes on contests may already exist: {e}")


class Database:
    client: Optional[AsyncIOMotorClient] = None

    @classmethod
    async def connect_db(cls):
        """Connect to MongoDB"""
        mongodb_url = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
        cls.client = AsyncIOMotorClient(mongodb_url)
        print("[OK] Connected to MongoDB")

        # Create indexes
        await cls.create_indexes()

    @classmethod
    async def create_indexes(cls):
        """Create database indexes"""
        await ensure_indexes(cls.get_db())

    @classmethod
    async def close_db(cls):
        """Close MongoDB connection"""
        if cls.client:
            cls.client.close()
            cls.client = None
            print("[OK] Disconnected from MongoDB")

    @classmethod
    def get_db(cls):
        """Get database instance"""
        database_name = os.getenv("DATABASE_NAME", "contestsDB")
        return cls.client[database_name]


async def get_database():
    """Dependency to get database"""
    return Database.get_db()
