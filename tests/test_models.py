import pytest
from app.core.exceptions import ModelServiceError, NoModelsAvailableError
from app.models.model import GatewayModel
from app.services.models import ModelDirectory, resolve_model

DIRECTORY = [
    GatewayModel(id="openai/gpt-4o", name="GPT-4o"),
    GatewayModel(id="perplexity/sonar", name="Sonar"),
]


@pytest.mark.parametrize("requested", ["GPT-4o", "Sonar", None, "Unknown Model"])
def test_web_search_prefers_search_model(requested):
    assert resolve_model(requested, True, DIRECTORY) == "perplexity/sonar"


def test_web_search_without_search_model_uses_first_entry():
    models = [GatewayModel(id="anthropic/claude", name="Claude"), DIRECTORY[0]]
    assert resolve_model("GPT-4o", True, models) == "anthropic/claude"


def test_requested_display_name_maps_to_id():
    assert resolve_model("GPT-4o", False, DIRECTORY) == "openai/gpt-4o"
    assert resolve_model("Sonar", False, DIRECTORY) == "perplexity/sonar"


def test_unknown_or_missing_name_falls_back_to_first_entry():
    assert resolve_model("Unknown Model", False, DIRECTORY) == "openai/gpt-4o"
    assert resolve_model(None, False, DIRECTORY) == "openai/gpt-4o"


def test_duplicate_display_name_picks_first_match(caplog):
    models = [
        GatewayModel(id="vendor-a/chat", name="Chat"),
        GatewayModel(id="vendor-b/chat", name="Chat"),
    ]
    assert resolve_model("Chat", False, models) == "vendor-a/chat"
    assert "matches 2 models" in caplog.text


def test_empty_directory():
    assert resolve_model("GPT-4o", False, [], default_model_id="openai/gpt-4o") == "openai/gpt-4o"
    with pytest.raises(NoModelsAvailableError):
        resolve_model(None, True, [])


async def test_directory_filters_language_models(gateway):
    directory = ModelDirectory(gateway.client())

    all_models = await directory.list_models()
    language_models = await directory.list_models(language_only=True)

    assert [m.id for m in all_models] == ["openai/gpt-4o", "perplexity/sonar", "openai/dall-e-3"]
    assert [m.id for m in language_models] == ["openai/gpt-4o", "perplexity/sonar"]


async def test_directory_caches_within_ttl(gateway):
    directory = ModelDirectory(gateway.client(), cache_ttl=300)

    await directory.list_models()
    await directory.list_models(language_only=True)
    assert gateway.model_requests == 1

    directory.invalidate()
    await directory.list_models()
    assert gateway.model_requests == 2


async def test_directory_without_cache_refetches(gateway):
    directory = ModelDirectory(gateway.client(), cache_ttl=0)

    await directory.list_models()
    await directory.list_models()
    assert gateway.model_requests == 2


async def test_directory_fetch_failure(gateway):
    gateway.models_status_code = 503
    directory = ModelDirectory(gateway.client())

    with pytest.raises(ModelServiceError) as exc_info:
        await directory.list_models()
    assert exc_info.value.status_code == 503
    assert exc_info.value.detail["code"] == "MODEL_SERVICE_ERROR"
