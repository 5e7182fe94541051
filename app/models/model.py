from pydantic import BaseModel
from typing import Any, Dict, Optional

LANGUAGE_MODALITY = "language"

class GatewayModel(BaseModel):
    id: str
    name: str
    modality: str = LANGUAGE_MODALITY
    description: Optional[str] = None
    pricing: Optional[Dict[str, Any]] = None
