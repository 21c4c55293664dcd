from fastapi import Header
import httpx

from config import settings
from errors import AuthenticationRequiredError


async def _fetch_user(access_token: str) -> dict:
    if not settings.auth_url:
        raise AuthenticationRequiredError("Identity provider is not configured")
    headers = {"Authorization": f"Bearer {access_token}"}
    if settings.auth_api_key:
        headers["apikey"] = settings.auth_api_key
    url = f"{settings.auth_url.rstrip('/')}/auth/v1/user"
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        raise AuthenticationRequiredError("Identity provider unreachable") from exc
    if response.status_code != 200:
        raise AuthenticationRequiredError("Invalid auth token")
    return response.json()


async def get_current_user_id(
    authorization: str | None = Header(default=None, convert_underscores=False),
) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationRequiredError("Missing auth token")
    token = authorization.split(" ", 1)[1]
    user = await _fetch_user(token)
    user_id = user.get("id")
    if not user_id:
        raise AuthenticationRequiredError("Invalid user profile")
    return user_id
