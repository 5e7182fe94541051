from typing import Optional
from fastapi import APIRouter, Depends, Query
from app.api.deps import get_model_directory
from app.models.model import LANGUAGE_MODALITY
from app.schemas.model import ModelListResponse
from app.services.models import ModelDirectory

router = APIRouter(tags=["Models"])

@router.get("",
    response_model=ModelListResponse,
    response_model_exclude_none=True,
    description="List the models the gateway can route to",
    responses={
        200: {"description": "Available models"},
        503: {"description": "Model gateway unavailable"}
    })
async def list_models(
    modality: Optional[str] = Query(None, description="Only return models of this modality, e.g. 'language'"),
    directory: ModelDirectory = Depends(get_model_directory)
) -> ModelListResponse:
    models = await directory.list_models(language_only=modality == LANGUAGE_MODALITY)
    if modality:
        models = [model for model in models if model.modality == modality]
    return ModelListResponse(models=models)
