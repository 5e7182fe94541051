from typing import List, Optional
import logging
import time
from app.core.exceptions import NoModelsAvailableError
from app.models.model import LANGUAGE_MODALITY, GatewayModel
from app.services.gateway import GatewayClient

logger = logging.getLogger(__name__)


class ModelDirectory:
    """Gateway model listing with a short-lived cache"""

    def __init__(self, gateway: GatewayClient, cache_ttl: int = 300):
        self.gateway = gateway
        self.cache_ttl = cache_ttl
        self._cache: Optional[List[GatewayModel]] = None
        self._cached_at: Optional[float] = None

    async def list_models(self, language_only: bool = False) -> List[GatewayModel]:
        """
        Get the current model list.

        Args:
            language_only: Keep only conversational text models

        Raises:
            ModelServiceError: If the list has to be fetched and the gateway fails
        """
        if self._is_cache_valid():
            logger.debug("Cache hit for model directory")
            models = self._cache
        else:
            logger.info("Fetching model directory from gateway")
            models = await self.gateway.list_models()
            self._cache = models
            self._cached_at = time.monotonic()

        if language_only:
            return [model for model in models if model.modality == LANGUAGE_MODALITY]
        return list(models)

    def invalidate(self) -> None:
        self._cache = None
        self._cached_at = None

    def _is_cache_valid(self) -> bool:
        if self._cache is None or self._cached_at is None:
            return False
        return time.monotonic() - self._cached_at < self.cache_ttl


def resolve_model(
    requested_name: Optional[str],
    web_search: bool,
    models: List[GatewayModel],
    search_model_id: str = "perplexity/sonar",
    default_model_id: str = "openai/gpt-4o"
) -> str:
    """
    Pick the callable model id for a chat turn.

    Web search prefers the search model, then the first listed model. Otherwise
    the model whose display name matches is used, falling back to the first
    listed model, or to the default id when the listing is empty.

    Raises:
        NoModelsAvailableError: If web search is requested and no models are listed
    """
    if web_search:
        for model in models:
            if model.id == search_model_id:
                return model.id
        if not models:
            raise NoModelsAvailableError()
        return models[0].id

    if requested_name:
        matches = [model for model in models if model.name == requested_name]
        if len(matches) > 1:
            logger.warning(
                f"Display name {requested_name!r} matches {len(matches)} models, using {matches[0].id}"
            )
        if matches:
            return matches[0].id
        logger.info(f"Requested model {requested_name!r} not available, falling back")

    if models:
        return models[0].id
    return default_model_id
