"""
Collection names and index setup.

ensure_indexes() is awaited once from the application lifespan.
"""

from __future__ import annotations

from pymongo import ASCENDING

from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"
OTPS_COLLECTION = "otps"

# Abandoned OTP records are purged a day after their code expired
OTP_RECORD_RETENTION_SECONDS = 86400


async def ensure_indexes(db) -> None:
    users = db[USERS_COLLECTION]
    otps = db[OTPS_COLLECTION]

    await users.create_index([("email", ASCENDING)], unique=True)
    await users.create_index([("addedBy", ASCENDING)])
    await users.create_index([("resetPasswordToken", ASCENDING)], sparse=True)

    await otps.create_index([("email", ASCENDING)], unique=True)
    await otps.create_index(
        [("otpExpires", ASCENDING)],
        expireAfterSeconds=OTP_RECORD_RETENTION_SECONDS,
    )

    log.info("mongo_indexes_ensured", collections=[USERS_COLLECTION, OTPS_COLLECTION])
