"""
OTP record persistence — the `otps` collection.

One document per email; every write is a single-document operation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from repositories.indexes import OTPS_COLLECTION
from schemas.models.otp import OtpDoc
from shared.datetime_utils import utcnow


class OtpRepository:
    def __init__(self, db) -> None:
        self._col = db[OTPS_COLLECTION]

    async def get(self, email: str) -> Optional[OtpDoc]:
        return OtpDoc.from_mongo(await self._col.find_one({"email": email}))

    async def create(self, record: OtpDoc) -> bool:
        """Insert *record*.

        Returns False when a record for the email already exists (two sends
        racing each other); the caller treats that as "already pending".
        """
        try:
            await self._col.insert_one(record.to_mongo())
        except DuplicateKeyError:
            return False
        return True

    async def replace_code(
        self, email: str, otp_hash: str, otp_expires: datetime
    ) -> Optional[OtpDoc]:
        """Swap in a new code and expiry; the record goes back to unverified."""
        doc = await self._col.find_one_and_update(
            {"email": email},
            {
                "$set": {
                    "otpHash": otp_hash,
                    "otpExpires": otp_expires,
                    "otpVerified": False,
                    "updatedAt": utcnow(),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        return OtpDoc.from_mongo(doc)

    async def mark_verified(self, email: str, otp_hash: str) -> bool:
        """Flag the record verified, provided the code has not been replaced meanwhile.

        Legacy records without an otpHash match too and get one written.
        """
        result = await self._col.update_one(
            {"email": email, "otpHash": {"$in": [otp_hash, None]}},
            {"$set": {"otpHash": otp_hash, "otpVerified": True, "updatedAt": utcnow()}},
        )
        return result.matched_count == 1

    async def delete(self, email: str) -> bool:
        result = await self._col.delete_one({"email": email})
        return result.deleted_count == 1
