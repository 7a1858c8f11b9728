from uuid import UUID

from pydantic import BaseModel, ConfigDict


class StoreContext(BaseModel):
    """
    Trusted, request-scoped store identity.
    Derived once per request by the resolver; never persisted.
    """
    model_config = ConfigDict(frozen=True)

    store_id: UUID
    shop: str
    name: str
