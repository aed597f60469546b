from fastapi import Header, HTTPException, Request, status

from app.core.security import decode_access_token
from app.utils.logger import get_logger

logger = get_logger("auth.guard")


async def get_current_operator(
    request: Request,
    authorization: str | None = Header(None),
) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("Missing bearer token", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization.split("Bearer ")[1].strip()
    payload = decode_access_token(token)

    operator = payload["sub"]
    request.state.operator = operator
    return operator
