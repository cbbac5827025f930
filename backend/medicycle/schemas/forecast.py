from typing import List

from pydantic import BaseModel, Field


class DemandPoint(BaseModel):
    month: int = Field(ge=1)
    demand: float = Field(ge=0)


class ForecastRequest(BaseModel):
    history: List[DemandPoint] = Field(min_length=2)
    horizon: int = Field(default=1, ge=1, le=12)


class ForecastPoint(BaseModel):
    month: int
    label: str
    demand: float
    is_prediction: bool = Field(alias="isPrediction")

    class Config:
        populate_by_name = True


class ForecastResponse(BaseModel):
    prediction: int
    slope: float
    intercept: float
    data: List[ForecastPoint]
