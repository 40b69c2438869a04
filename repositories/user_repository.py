"""
User persistence — the `users` collection.

Single-document writes go straight to the collection. The two writes that
touch a parent and a child together (adding and deleting a sub-account) run
in one multi-document transaction. Deployments without a replica set turn
transactions off; those writes then fall back to a compensating step that
undoes the first write when the second one fails.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import ConflictError, NotFoundError
from repositories.indexes import USERS_COLLECTION
from schemas.models.user import UserDoc
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

_DUPLICATE_EMAIL = "User with the same email already exists!"


def _stored_key(attr: str) -> str:
    field = UserDoc.model_fields[attr]
    return field.alias or attr


class UserRepository:
    def __init__(self, db, use_transactions: bool = True) -> None:
        self._db = db
        self._col = db[USERS_COLLECTION]
        self._use_transactions = use_transactions

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get_by_id(self, user_id: ObjectId) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._col.find_one({"_id": user_id}))

    async def get_by_email(self, email: str) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._col.find_one({"email": email}))

    async def email_exists(self, email: str) -> bool:
        return await self._col.find_one({"email": email}, {"_id": 1}) is not None

    async def list_added_users(self, added_by: ObjectId) -> list[UserDoc]:
        cursor = self._col.find({"addedBy": added_by}).sort("date", 1)
        return [UserDoc.from_mongo(doc) async for doc in cursor]

    async def list_all(self) -> list[UserDoc]:
        cursor = self._col.find({}).sort("date", 1)
        return [UserDoc.from_mongo(doc) async for doc in cursor]

    # ── Single-document writes ──────────────────────────────────────────────

    async def insert(self, user: UserDoc) -> UserDoc:
        try:
            result = await self._col.insert_one(user.to_mongo())
        except DuplicateKeyError:
            # Race: the email was registered between the pre-check and insert
            log.warning("user_insert_conflict", reason="duplicate_email")
            raise ConflictError(_DUPLICATE_EMAIL, field="email")
        return user.model_copy(update={"id": result.inserted_id})

    async def update_fields(
        self, user_id: ObjectId, changes: dict[str, Any]
    ) -> Optional[UserDoc]:
        """Apply *changes* (keyed by UserDoc attribute) and return the updated user.

        Returns None when the user does not exist.
        """
        update = {_stored_key(attr): value for attr, value in changes.items()}
        update["updatedAt"] = utcnow()
        try:
            doc = await self._col.find_one_and_update(
                {"_id": user_id},
                {"$set": update},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise ConflictError(_DUPLICATE_EMAIL, field="email")
        return UserDoc.from_mongo(doc)

    async def set_reset_token(
        self, user_id: ObjectId, token_hash: str, expires_at: datetime
    ) -> None:
        await self._col.update_one(
            {"_id": user_id},
            {
                "$set": {
                    "resetPasswordToken": token_hash,
                    "resetPasswordExpires": expires_at,
                    "updatedAt": utcnow(),
                }
            },
        )

    async def consume_reset_token(
        self, token_hash: str, password_hash: str, now: datetime
    ) -> Optional[UserDoc]:
        """Set a new password for the holder of a live reset token.

        Matching, expiry check, password swap and token removal happen in one
        atomic update, so a token can only ever be used once. Returns None
        when no user holds an unexpired token with this hash.
        """
        doc = await self._col.find_one_and_update(
            {"resetPasswordToken": token_hash, "resetPasswordExpires": {"$gt": now}},
            {
                "$set": {"password": password_hash, "updatedAt": now},
                "$unset": {"resetPasswordToken": "", "resetPasswordExpires": ""},
            },
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    async def delete(self, user_id: ObjectId) -> bool:
        result = await self._col.delete_one({"_id": user_id})
        return result.deleted_count == 1

    # ── Parent/child writes ─────────────────────────────────────────────────

    async def create_added_user(self, child: UserDoc, parent_id: ObjectId) -> UserDoc:
        """Insert *child* and append its id to the parent's addedUsers.

        Raises:
            NotFoundError: the parent vanished before it could be updated.
            ConflictError: the child's email is already taken.
        """

        async def _write(session) -> UserDoc:
            try:
                result = await self._col.insert_one(child.to_mongo(), session=session)
            except DuplicateKeyError:
                raise ConflictError(_DUPLICATE_EMAIL, field="email")
            child_id = result.inserted_id
            try:
                linked = await self._col.update_one(
                    {"_id": parent_id},
                    {"$addToSet": {"addedUsers": child_id}, "$set": {"updatedAt": utcnow()}},
                    session=session,
                )
                if linked.matched_count == 0:
                    raise NotFoundError("Admin user not found.", field="addedBy")
            except Exception:
                if session is None:
                    await self._col.delete_one({"_id": child_id})
                    log.warning(
                        "added_user_compensated",
                        child_id=str(child_id),
                        parent_id=str(parent_id),
                        action="child_deleted",
                    )
                raise
            return child.model_copy(update={"id": child_id})

        return await self._atomically(_write)

    async def delete_added_user(
        self, child_id: ObjectId, parent_id: Optional[ObjectId]
    ) -> Optional[UserDoc]:
        """Delete *child_id* and pull it from the parent's addedUsers.

        The link is always pulled from the child's own addedBy. When
        *parent_id* is given the child must belong to it. Returns the deleted
        user, or None when no such user exists under that parent.
        """
        query: dict = {"_id": child_id}
        if parent_id is not None:
            query["addedBy"] = parent_id

        async def _write(session) -> Optional[UserDoc]:
            doc = await self._col.find_one_and_delete(query, session=session)
            if doc is None:
                return None
            owner_id = doc.get("addedBy")
            if owner_id is not None:
                try:
                    await self._col.update_one(
                        {"_id": owner_id},
                        {"$pull": {"addedUsers": child_id}, "$set": {"updatedAt": utcnow()}},
                        session=session,
                    )
                except Exception:
                    if session is None:
                        await self._col.insert_one(doc)
                        log.warning(
                            "added_user_compensated",
                            child_id=str(child_id),
                            parent_id=str(owner_id),
                            action="child_restored",
                        )
                    raise
            return UserDoc.from_mongo(doc)

        return await self._atomically(_write)

    async def _atomically(self, write: Callable[[Any], Awaitable[T]]) -> T:
        if not self._use_transactions:
            return await write(None)
        async with self._db.client.start_session() as session:
            async with await session.start_transaction():
                return await write(session)
