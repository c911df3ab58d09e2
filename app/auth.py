from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from loguru import logger
from app.config import get_settings
from app.database import get_supabase

security = HTTPBearer()


def decode_access_token(token: str, secret: str) -> dict:
    """Decode a Supabase session JWT issued for the `authenticated` audience."""
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience="authenticated",
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    payload = decode_access_token(credentials.credentials, get_settings().supabase_anon_key)

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: no user ID")

    return {"user_id": user_id, "email": payload.get("email", "")}


async def get_current_contractor(user: dict = Depends(get_current_user)) -> dict:
    """Contractor (company) record owning the authenticated user's proposals."""
    db = get_supabase()
    result = (
        db.table("contractors")
        .select("*")
        .eq("user_id", user["user_id"])
        .maybe_single()
        .execute()
    )

    if not result or not result.data:
        logger.warning(f"No contractor profile for user {user['user_id']}")
        raise HTTPException(
            status_code=404,
            detail="Contractor profile not found. Please complete your company profile.",
        )

    return {**result.data, "user_id": user["user_id"]}
