"""FastAPI dependencies shared across try-on endpoints."""

from typing import Optional

from fastapi import Header, HTTPException

from prendas.config import logger
from prendas.dependencies import Services, get_services


async def get_owner_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Return the authenticated user id.
    Authentication happens upstream; the gateway forwards the verified id.
    """
    if not x_user_id or not x_user_id.strip():
        logger.warning("Request without authenticated user id")
        raise HTTPException(status_code=401, detail="Unauthorized: missing user id")
    return x_user_id.strip()


def provide_services() -> Services:
    return get_services()
