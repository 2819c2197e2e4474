"""
Connector Catalogue Routes
"""

from typing import List

from fastapi import APIRouter

from npip.adapters.connectors import get_connectors
from npip.schemas import ConnectorResponse

router = APIRouter()


@router.get("", response_model=List[ConnectorResponse])
async def list_connectors():
    """Every known source, in dispatch order"""
    return [ConnectorResponse(**c.describe()) for c in get_connectors()]
