from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AuditLogRead(BaseModel):
    id: int
    event_type: str
    store_id: Optional[str]
    attempted_store_id: Optional[str]
    shop: str
    endpoint: str
    method: str
    ip: Optional[str]
    user_agent: Optional[str]
    details: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogList(BaseModel):
    items: List[AuditLogRead]
    count: int
