from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

class Collection(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    description: str | None = None
    icon: str | None = None
    created_at: datetime
    updated_at: datetime
    spot_count: int = 0

class CollectionCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    icon: str | None = None

class CollectionUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    icon: str | None = None

class CollectionSpotAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spot_id: str = Field(alias='spotId')

# APIレスポンス全体を表すスキーマ
class CollectionsPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: list[Collection]
    total: int
    page: int
    limit: int
    total_pages: int = Field(alias='totalPages')
