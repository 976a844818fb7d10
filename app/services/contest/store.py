from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict, Any
from bson import ObjectId
from pymongo import ReturnDocument


class ContestStore:
    """Accessor for contest documents"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.contests = db.contests

    @staticmethod
    def parse_id(contest_id: str) -> Optional[ObjectId]:
        """ObjectId for a hex string, None when malformed"""
        if isinstance(contest_id, ObjectId):
            return contest_id
        if contest_id and ObjectId.is_valid(contest_id):
            return ObjectId(contest_id)
        return None

    async def get(self, contest_id: str) -> Optional[Dict]:
        oid = self.parse_id(contest_id)
        if oid is None:
            return None
        return await self.contests.find_one({"_id": oid})

    async def get_many(self, contest_ids: List[str]) -> Dict[str, Dict]:
        """Contests keyed by string id, malformed/missing ids are skipped"""
        oids = [oid for oid in (self.parse_id(cid) for cid in contest_ids) if oid is not None]
        if not oids:
            return {}
        contests = await self.contests.find({"_id": {"$in": oids}}).to_list(length=None)
        return {str(contest["_id"]): contest for contest in contests}

    async def find(
        self,
        query: Dict[str, Any],
        sort: Optional[List] = None,
        limit: int = 0
    ) -> List[Dict]:
        cursor = self.contests.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit or None)

    async def insert(self, contest: Dict) -> ObjectId:
        result = await self.contests.insert_one(contest)
        return result.inserted_id

    async def update_if(
        self,
        contest_id: str,
        conditions: Dict[str, Any],
        update: Dict[str, Any]
    ) -> Optional[Dict]:
        """
        Apply `update` only while `conditions` still hold.
        Returns the updated document, or None when nothing matched.
        """
        oid = self.parse_id(contest_id)
        if oid is None:
            return None
        return await self.contests.find_one_and_update(
            {"_id": oid, **conditions},
            update,
            return_document=ReturnDocument.AFTER
        )

    async def delete_if(self, contest_id: str, conditions: Dict[str, Any]) -> bool:
        """Delete only while `conditions` still hold"""
        oid = self.parse_id(contest_id)
        if oid is None:
            return False
        result = await self.contests.delete_one({"_id": oid, **conditions})
        return result.deleted_count == 1

    async def increment_participant_count(self, contest_id: str) -> bool:
        oid = self.parse_id(contest_id)
        if oid is None:
            return False
        result = await self.contests.update_one(
            {"_id": oid},
            {"$inc": {"participantCount": 1}}
        )
        return result.modified_count == 1
