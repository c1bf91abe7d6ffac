import json
from typing import List, Optional

from fastapi import Request

from ..validators import clean_ids


async def bulk_delete_ids(request: Request) -> Optional[List[str]]:
    """``ids`` from an optional JSON body; None when there is no usable body."""
    raw = await request.body()
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("ids"), list):
        return None
    return clean_ids(payload["ids"])
