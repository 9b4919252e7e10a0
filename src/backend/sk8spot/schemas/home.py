from pydantic import BaseModel, ConfigDict

class Trick(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    difficulty: str | None = None
    description: str | None = None

class DailyChallenge(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None = None
    is_active: bool = True

class DailyChallengesResponse(BaseModel):
    total: int
    challenges: list[DailyChallenge]
