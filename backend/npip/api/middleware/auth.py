"""
Authentication Middleware
The upstream auth gateway resolves the caller and forwards its account id
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from npip.models import Account
from npip.utils.database import get_db


async def get_current_account(
    x_account_id: Optional[str] = Header(None, alias="X-Account-Id"),
    db: AsyncSession = Depends(get_db),
) -> Account:
    """
    Dependency to get the calling account.

    Raises:
        HTTPException: If the header is missing or the account is unknown
    """
    if not x_account_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing account header",
        )

    try:
        account_id = UUID(x_account_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid account id",
        )

    result = await db.execute(
        select(Account).where(Account.id == account_id, Account.is_active == True)
    )
    account = result.scalar_one_or_none()

    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account not found or inactive",
        )

    return account
