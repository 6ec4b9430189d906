from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SeriesPointDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    label: str
    value: float


class ForecastPointDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    month: str
    forecastedDemand: float

    def to_series_point(self) -> SeriesPointDto:
        return SeriesPointDto(label=self.month, value=self.forecastedDemand)


class RunForecastRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentId: str
    equipmentNames: dict[str, str] = {}


class ChartRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    points: List[SeriesPointDto] = []
    width: int = Field(600, gt=0)
    height: int = Field(250, gt=0)
    strokeColor: Optional[str] = None
    equipmentType: Optional[str] = None
