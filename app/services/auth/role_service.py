from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict, Tuple
from datetime import datetime
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.models.auth.user import UserCreate, ProfileUpdate, UserInDB, UserRole
from app.utils.errors import Forbidden, NotFound, AlreadyRequested, InternalFailure


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def require_admin(actor: Optional[Dict]):
    """Guard: actor must be an admin"""
    if not actor or actor.get("role") != UserRole.ADMIN:
        raise Forbidden("Admin access required")


class RoleService:
    """
    Service for user registration, roles and creator promotion.

    Owns role transitions and the per-role action counters.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.users = db.users
        self.requests = db.creatorRequests

    async def get_user(self, email: str) -> Dict:
        user = await self.users.find_one({"email": normalize_email(email)})
        if not user:
            raise NotFound("User not found")
        return user

    async def get_role(self, email: str) -> str:
        user = await self.get_user(email)
        return user.get("role", UserRole.USER.value)

    async def list_users(self, actor: Dict) -> List[Dict]:
        require_admin(actor)
        return await self.users.find().sort("createdAt", -1).to_list(length=None)

    async def register(self, user_data: UserCreate) -> Tuple[Dict, bool]:
        """
        Register a user, idempotent by email.

        Returns:
            (user, created) - created is False when the email was already registered
        """
        email = normalize_email(user_data.email)
        existing = await self.users.find_one({"email": email})
        if existing:
            return existing, False

        user = UserInDB(
            email=email,
            name=user_data.name,
            bio=user_data.bio,
            image=user_data.image,
            role=UserRole.USER,
            createdAt=datetime.utcnow()
        ).model_dump(mode="python")
        user["role"] = UserRole.USER.value

        try:
            result = await self.users.insert_one(user)
        except DuplicateKeyError:
            # Lost a concurrent registration race, the winner's record stands
            return await self.users.find_one({"email": email}), False

        user["_id"] = result.inserted_id
        print(f"[INFO] Registered user {email}")
        return user, True

    async def update_profile(self, email: str, profile: ProfileUpdate) -> Dict:
        changes = profile.model_dump(exclude_none=True)
        changes["updatedAt"] = datetime.utcnow()

        user = await self.users.find_one_and_update(
            {"email": normalize_email(email)},
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )
        if not user:
            raise NotFound("User not found")
        return user

    async def set_role(self, email: str, role: UserRole, actor: Dict) -> Dict:
        """Admin override of a user's role"""
        require_admin(actor)

        user = await self.users.find_one_and_update(
            {"email": normalize_email(email)},
            {"$set": {"role": UserRole(role).value, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER
        )
        if not user:
            raise NotFound("User not found")

        print(f"[INFO] {actor['email']} set role of {user['email']} to {user['role']}")
        return user

    async def request_creator_promotion(self, email: str) -> Dict:
        email = normalize_email(email)
        if await self.requests.find_one({"email": email}):
            raise AlreadyRequested()

        request = {"email": email, "requestedAt": datetime.utcnow()}
        try:
            result = await self.requests.insert_one(request)
        except DuplicateKeyError:
            raise AlreadyRequested()

        request["_id"] = result.inserted_id
        return request

    async def list_requests(self, actor: Dict) -> List[Dict]:
        require_admin(actor)
        return await self.requests.find().sort("requestedAt", 1).to_list(length=None)

    async def approve_promotion(self, email: str, actor: Dict) -> Dict:
        """
        Promote the requester to creator and clear the request.
        Either both happen or neither does.
        """
        require_admin(actor)
        email = normalize_email(email)

        if not await self.users.find_one({"email": email}):
            raise NotFound("User not found")

        # Claiming the request first makes a concurrent approve/reject a no-op
        request = await self.requests.find_one_and_delete({"email": email})
        if not request:
            raise NotFound("Creator request not found")

        try:
            user = await self.users.find_one_and_update(
                {"email": email},
                {"$set": {"role": UserRole.CREATOR.value, "updatedAt": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER
            )
        except PyMongoError as e:
            user = None
            print(f"[ERROR] Promotion of {email} failed: {e}")

        if not user:
            # Put the request back so the pair stays consistent
            await self.requests.insert_one(request)
            raise InternalFailure("Failed to promote user")

        print(f"[OK] {actor['email']} promoted {email} to creator")
        return user

    async def reject_promotion(self, email: str, actor: Dict) -> bool:
        require_admin(actor)
        result = await self.requests.delete_one({"email": normalize_email(email)})
        if result.deleted_count == 0:
            raise NotFound("Creator request not found")
        return True

    async def increment_counters(self, email: str, counters: Dict[str, float]) -> bool:
        """
        Increment dotted counter paths, e.g. {"userActions.contestsWon": 1}.
        Counters only ever grow.
        """
        result = await self.users.update_one(
            {"email": normalize_email(email)},
            {"$inc": counters}
        )
        if result.matched_count == 0:
            print(f"[WARN] Counter update skipped, no user {email}: {counters}")
            return False
        return True
