from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List


class MealRecord(BaseModel):
    """A candidate meal. Serialized (by alias) into meal_request_options.meal_data."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    image_url: Optional[str] = None
    estimated_minutes: Optional[int] = None
    description: Optional[str] = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class MealBatchResponse(BaseModel):
    meals: List[MealRecord]
    count: int
    from_cache: bool = False
