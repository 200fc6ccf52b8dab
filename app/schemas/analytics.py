from app.schemas.common import CamelModel


class GrowthPoint(CamelModel):
    label: str
    value: int


class GrowthSeriesResponse(CamelModel):
    success: bool = True
    data: list[GrowthPoint]
