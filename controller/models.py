from pydantic import BaseModel, ConfigDict


class MetricsSample(BaseModel):
    # NaN and overflowing numbers can't be served back as JSON
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    cpu_usage: float
    memory_usage: float
    disk_usage: float
