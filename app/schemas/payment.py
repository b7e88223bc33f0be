from pydantic import BaseModel
from typing import Optional

class WebhookData(BaseModel):
    type: str
    data: dict

class WebhookAck(BaseModel):
    status: str = "success"
    message: str
    booking_id: Optional[int] = None
