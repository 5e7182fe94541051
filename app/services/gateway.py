"""
Client for the model-routing gateway.

The gateway speaks the OpenAI-compatible HTTP API: GET /models lists the
callable models and POST /chat/completions streams a completion as
server-sent events.
"""

from typing import AsyncIterator, Dict, List, Optional, Set
import json
import logging
import httpx
from app.core.exceptions import GatewayError, ModelServiceError, UpstreamRateLimitedError
from app.models.model import LANGUAGE_MODALITY, GatewayModel
from app.schemas.chat import ReasoningDeltaEvent, SourceUrlEvent, StreamEvent, TextDeltaEvent

logger = logging.getLogger(__name__)


class GatewayStream:
    """One open streaming completion"""

    def __init__(self, response: httpx.Response):
        self._response = response
        self._sources: Set[str] = set()

    async def events(self) -> AsyncIterator[StreamEvent]:
        async for line in self._response.aiter_lines():
            line = line.strip()
            if not line.startswith("data:"):
                continue

            data = line[len("data:"):].strip()
            if data == "[DONE]":
                break

            try:
                chunk = json.loads(data)
            except ValueError:
                logger.warning(f"Skipping undecodable stream chunk: {data[:100]}")
                continue

            if not isinstance(chunk, dict):
                logger.warning(f"Skipping non-object stream chunk: {data[:100]}")
                continue

            if chunk.get("error"):
                raise GatewayError(f"Gateway stream error: {chunk['error']}")

            for event in self._parse_chunk(chunk):
                yield event

    def _parse_chunk(self, chunk: dict) -> List[StreamEvent]:
        events: List[StreamEvent] = []

        for choice in chunk.get("choices") or []:
            delta = choice.get("delta") or {}
            reasoning = delta.get("reasoning") or delta.get("reasoning_content")
            if reasoning:
                events.append(ReasoningDeltaEvent(delta=reasoning))
            content = delta.get("content")
            if content:
                events.append(TextDeltaEvent(delta=content))

        # Search models repeat the full citation list in every chunk
        for url in chunk.get("citations") or []:
            if isinstance(url, str) and url not in self._sources:
                self._sources.add(url)
                events.append(SourceUrlEvent(source_id=f"source-{len(self._sources)}", url=url))

        return events

    async def aclose(self) -> None:
        await self._response.aclose()


class GatewayClient:
    """Shared HTTP connection pool to the gateway"""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport
        )

    async def list_models(self) -> List[GatewayModel]:
        """
        Fetch the models the gateway can route to.

        Raises:
            ModelServiceError: If the gateway is unreachable or answers with an error
        """
        try:
            response = await self._client.get("/models")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error fetching gateway models: {e}")
            raise ModelServiceError(f"Gateway returned {e.response.status_code} for model listing")
        except httpx.RequestError as e:
            logger.error(f"Request error fetching gateway models: {e}")
            raise ModelServiceError("Failed to connect to the model gateway")
        except ValueError as e:
            logger.error(f"Invalid model listing from gateway: {e}")
            raise ModelServiceError("Gateway returned an invalid model listing")

        if isinstance(data, dict):
            entries = data.get("data") or data.get("models") or []
        elif isinstance(data, list):
            entries = data
        else:
            entries = []

        models = []
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            models.append(GatewayModel(
                id=entry["id"],
                name=entry.get("name") or entry["id"],
                modality=entry.get("type") or entry.get("modality") or LANGUAGE_MODALITY,
                description=entry.get("description"),
                pricing=entry.get("pricing") if isinstance(entry.get("pricing"), dict) else None,
            ))

        logger.info(f"Fetched {len(models)} models from gateway")
        return models

    async def open_stream(self, model_id: str, messages: List[Dict[str, str]], system: str) -> GatewayStream:
        """
        Start a streaming completion. The HTTP status is checked before returning,
        so upstream refusals surface as errors while nothing has been streamed.

        Raises:
            UpstreamRateLimitedError: If the gateway answers 429
            GatewayError: On any other error status or transport failure
        """
        payload = {
            "model": model_id,
            "stream": True,
            "messages": [{"role": "system", "content": system}, *messages],
        }
        request = self._client.build_request("POST", "/chat/completions", json=payload)

        try:
            response = await self._client.send(request, stream=True)
        except httpx.RequestError as e:
            logger.error(f"Request error opening gateway stream for {model_id}: {e}")
            raise GatewayError("Failed to connect to the model gateway")

        if response.status_code == 429:
            await response.aclose()
            logger.warning(f"Gateway rate limited request for {model_id}")
            raise UpstreamRateLimitedError()

        if response.is_error:
            body = await response.aread()
            await response.aclose()
            logger.error(f"Gateway returned {response.status_code} for {model_id}: {body[:500]!r}")
            raise GatewayError(f"Gateway returned {response.status_code}")

        return GatewayStream(response)

    async def aclose(self) -> None:
        await self._client.aclose()
