# assessment_engine/core/database.py
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pymongo
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from .config import config
from .exceptions import DuplicateKey
from .utils import DateTimeUtils

logger = logging.getLogger(__name__)

SESSION_SUMMARY_FIELDS = {
    "_id": 1, "mode": 1, "kind": 1, "level": 1, "field": 1, "language": 1,
    "average_score": 1, "is_finished": 1, "created_at": 1
}

# Mean of stored answer scores, unscored answers as 0, 2 decimals; 0 with no answers
AVERAGE_SCORE_EXPR = {"$ifNull": [
    {"$round": [{"$avg": {"$map": {"input": "$answers", "in": {"$ifNull": ["$$this.score", 0]}}}}, 2]},
    0
]}

class DatabaseManager:
    """MongoDB-backed store for sessions, quizzes and leaderboards.

    Profiles and users are owned elsewhere and only read here.
    """

    def __init__(self, db=None):
        """Use the given database handle, or connect using config"""
        self.mongo_client = None

        if db is None:
            self.mongo_client = pymongo.MongoClient(
                config.MONGO_URI,
                serverSelectionTimeoutMS=config.MONGO_TIMEOUT_MS,
                tz_aware=True,
                maxPoolSize=10,
                minPoolSize=1
            )
            db = self.mongo_client[config.MONGO_DB_NAME]

        self.db = db
        self.sessions = db[config.SESSIONS_COLLECTION]
        self.quizzes = db[config.QUIZZES_COLLECTION]
        self.leaderboards = db[config.LEADERBOARDS_COLLECTION]
        self.profiles = db[config.PROFILES_COLLECTION]
        self.users = db[config.USERS_COLLECTION]

    def create_indexes(self):
        """Declare the uniqueness constraints the issuer and leaderboard rely on"""
        self.quizzes.create_index(
            [("kind", pymongo.ASCENDING), ("subject_ref", pymongo.ASCENDING),
             ("schedule_period", pymongo.ASCENDING)],
            unique=True,
            name="uniq_quiz_per_period"
        )
        self.leaderboards.create_index(
            [("schedule_period", pymongo.ASCENDING), ("kind", pymongo.ASCENDING)],
            unique=True,
            name="uniq_leaderboard_bucket"
        )
        self.sessions.create_index([("owner_id", pymongo.ASCENDING), ("created_at", pymongo.DESCENDING)])
        logger.info("✅ Database indexes created")

    # ==================== Sessions ====================
    def insert_session(self, session: Dict[str, Any]) -> ObjectId:
        result = self.sessions.insert_one(session)
        return result.inserted_id

    def find_session(self, session_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.sessions.find_one({"_id": session_id})

    def list_sessions(self, owner_id: str, mode: str) -> List[Dict[str, Any]]:
        cursor = self.sessions.find(
            {"owner_id": owner_id, "mode": mode},
            SESSION_SUMMARY_FIELDS
        ).sort("created_at", pymongo.DESCENDING)
        return list(cursor)

    def append_session_answer(self, session_id: ObjectId,
                              answer: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Append one answer to an unfinished session and recompute its average.

        The average is derived from the stored answers inside the same update,
        so concurrent appends cannot leave it stale. Returns the updated
        ``average_score`` and ``answers``, or None if the session is finished.
        """
        return self.sessions.find_one_and_update(
            {"_id": session_id, "is_finished": False},
            [
                # $literal keeps user text starting with "$" from being read as a field path
                {"$set": {"answers": {"$concatArrays": ["$answers", [{"$literal": answer}]]}}},
                {"$set": {
                    "average_score": AVERAGE_SCORE_EXPR,
                    "updated_at": DateTimeUtils.utcnow()
                }}
            ],
            projection={"average_score": 1, "answers": 1},
            return_document=ReturnDocument.AFTER
        )

    def finish_session(self, session_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Seal a session with its final average; None if it was already finished"""
        return self.sessions.find_one_and_update(
            {"_id": session_id, "is_finished": False},
            [{"$set": {
                "is_finished": True,
                "average_score": AVERAGE_SCORE_EXPR,
                "updated_at": DateTimeUtils.utcnow()
            }}],
            projection={"average_score": 1, "answers": 1},
            return_document=ReturnDocument.AFTER
        )

    # ==================== Quizzes ====================
    def find_quiz(self, quiz_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.quizzes.find_one({"_id": quiz_id})

    def find_quiz_by_key(self, kind: str, subject_ref: Optional[ObjectId],
                         schedule_period: str) -> Optional[Dict[str, Any]]:
        return self.quizzes.find_one({
            "kind": kind,
            "subject_ref": subject_ref,
            "schedule_period": schedule_period
        })

    def insert_quiz(self, quiz: Dict[str, Any]) -> ObjectId:
        """Insert a quiz; raises DuplicateKey if its period key is taken"""
        try:
            result = self.quizzes.insert_one(quiz)
        except DuplicateKeyError as e:
            raise DuplicateKey(f"Quiz already exists for {quiz.get('kind')}/{quiz.get('schedule_period')}") from e
        return result.inserted_id

    def complete_quiz(self, quiz_id: ObjectId, score: int, time_taken: int,
                      completed_at: datetime, answers: List[Dict[str, Any]],
                      submitted_by: Any) -> bool:
        """Write grading fields once; False if the quiz was already completed.

        The leaderboard entry is still owed at this point, tracked by
        ``leaderboard_recorded`` until the push succeeds.
        """
        result = self.quizzes.update_one(
            {"_id": quiz_id, "is_completed": False},
            {"$set": {
                "score": score,
                "time_taken": time_taken,
                "is_completed": True,
                "completed_at": completed_at,
                "answers": answers,
                "submitted_by": submitted_by,
                "leaderboard_recorded": False
            }}
        )
        return result.matched_count == 1

    def claim_leaderboard_entry(self, quiz_id: ObjectId) -> bool:
        """Mark a completed quiz's entry as recorded; False if another caller already did"""
        result = self.quizzes.update_one(
            {"_id": quiz_id, "leaderboard_recorded": False},
            {"$set": {"leaderboard_recorded": True}}
        )
        return result.matched_count == 1

    def release_leaderboard_entry(self, quiz_id: ObjectId):
        """Undo a claim after the leaderboard push failed"""
        self.quizzes.update_one(
            {"_id": quiz_id, "leaderboard_recorded": True},
            {"$set": {"leaderboard_recorded": False}}
        )

    # ==================== Leaderboards ====================
    def push_leaderboard_entry(self, schedule_period: str, kind: str, entry: Dict[str, Any]):
        """Atomic create-or-append on the (schedule_period, kind) bucket"""
        query = {"schedule_period": schedule_period, "kind": kind}
        now = DateTimeUtils.utcnow()
        update = {
            "$push": {"entries": entry},
            "$setOnInsert": {"created_at": now},
            "$set": {"updated_at": now}
        }
        try:
            self.leaderboards.update_one(query, update, upsert=True)
        except DuplicateKeyError:
            # Two first submissions upserted at once; the bucket exists now
            logger.warning(f"Leaderboard upsert race for {schedule_period}/{kind}, retrying")
            self.leaderboards.update_one(query, update, upsert=True)

    def find_leaderboard(self, schedule_period: str, kind: str) -> Optional[Dict[str, Any]]:
        return self.leaderboards.find_one({"schedule_period": schedule_period, "kind": kind})

    # ==================== Profiles / users (read-only) ====================
    def find_profile(self, profile_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.profiles.find_one({"_id": profile_id})

    def find_profile_by_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        # Profiles reference users by ObjectId; callers pass the hex string
        candidates = [user_id]
        if isinstance(user_id, str) and ObjectId.is_valid(user_id):
            candidates.append(ObjectId(user_id))
        return self.profiles.find_one({"userId": {"$in": candidates}})

    def find_profiles(self, profile_ids: Iterable[ObjectId]) -> Dict[Any, Dict[str, Any]]:
        ids = list({pid for pid in profile_ids if pid is not None})
        if not ids:
            return {}
        cursor = self.profiles.find({"_id": {"$in": ids}}, {"userId": 1, "photo": 1})
        return {doc["_id"]: doc for doc in cursor}

    def find_users(self, user_ids: Iterable[Any]) -> Dict[Any, Dict[str, Any]]:
        ids = list({uid for uid in user_ids if uid is not None})
        if not ids:
            return {}
        cursor = self.users.find({"_id": {"$in": ids}}, {"firstName": 1, "lastName": 1})
        return {doc["_id"]: doc for doc in cursor}

    # ==================== Health ====================
    def validate_connection(self) -> Dict[str, Any]:
        """Validate database connection"""
        status = {"mongodb": False, "overall": False}
        try:
            self.db.command("ping")
            status["mongodb"] = True
            status["overall"] = True
        except PyMongoError as e:
            logger.error(f"❌ MongoDB validation failed: {e}")
        return status

    def close(self):
        """Close database connections"""
        if self.mongo_client:
            self.mongo_client.close()
            logger.info("✅ Database connections closed")

# Singleton pattern for database manager
_db_manager = None

def get_db_manager() -> DatabaseManager:
    """Get database manager instance (singleton)"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
        _db_manager.create_indexes()
    return _db_manager

def close_db_manager():
    """Close database manager instance"""
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
