"""Password hashing with bcrypt."""

import bcrypt
from starlette.concurrency import run_in_threadpool

# Cost factor 10 keeps a check around 100ms on typical server hardware.
BCRYPT_ROUNDS = 10


def hash_password(password: str) -> str:
    """Hash password with bcrypt. Bytes truncated to 72 (bcrypt limit)."""
    pwd_bytes = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(pwd_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Verify password with bcrypt. False on mismatch or an unusable stored hash; never raises."""
    if not plain_password or not password_hash:
        return False
    plain_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(plain_bytes, password_hash.encode("utf-8"))
    except ValueError:
        return False


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(plain_password: str, password_hash: str | None) -> bool:
    return await run_in_threadpool(verify_password, plain_password, password_hash)
