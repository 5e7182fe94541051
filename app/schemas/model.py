from pydantic import BaseModel
from typing import List
from app.models.model import GatewayModel

class ModelListResponse(BaseModel):
    models: List[GatewayModel]
