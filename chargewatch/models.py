from pydantic import BaseModel

from .status import UpdatedBy


class ChargerRecord(BaseModel):
    """What the dashboard gets for one charger."""

    chargerId: str
    status: str
    statusText: str
    location: str
    operator: str
    address: str
    plugType: str
    power: str
    price: str
    lastUpdated: str
    isRealTime: bool
    updatedBy: str = UpdatedBy.SYSTEM
    error: str | None = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)
