"""Model and provider catalog.

Single place that knows which models exist, which provider serves them, how
LiteLLM expects them to be named, and who is allowed to use them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from resume_ai.generation.models import Credential, Plan


@dataclass(frozen=True)
class ProviderSpec:
    """A hosted LLM provider."""

    id: str
    name: str
    api_link: str
    env_key: str


@dataclass(frozen=True)
class ModelSpec:
    """A model offered to users.

    Attributes:
        id: Canonical model id as sent to the provider.
        name: Display name.
        provider: Provider id serving the model.
        is_free: Served on the platform key for every plan.
        is_recommended: Highlighted in model pickers.
        requires_pro: Only selectable on the pro plan.
    """

    id: str
    name: str
    provider: str
    is_free: bool = False
    is_recommended: bool = False
    requires_pro: bool = False


PROVIDERS: dict[str, ProviderSpec] = {
    "anthropic": ProviderSpec(
        id="anthropic",
        name="Anthropic",
        api_link="https://console.anthropic.com/",
        env_key="ANTHROPIC_API_KEY",
    ),
    "openai": ProviderSpec(
        id="openai",
        name="OpenAI",
        api_link="https://platform.openai.com/api-keys",
        env_key="OPENAI_API_KEY",
    ),
    "openrouter": ProviderSpec(
        id="openrouter",
        name="OpenRouter",
        api_link="https://openrouter.ai/account/api-keys",
        env_key="OPENROUTER_API_KEY",
    ),
}

AI_MODELS: tuple[ModelSpec, ...] = (
    # OpenAI
    ModelSpec("gpt-5", "GPT-5", "openai", is_recommended=True),
    ModelSpec("gpt-5.1-chat", "GPT-5.1", "openai", is_recommended=True),
    ModelSpec("gpt-5-mini-2025-08-07", "GPT-5 Mini", "openai"),
    # OpenRouter
    ModelSpec(
        "google/gemini-3-pro-preview",
        "Gemini 3 Pro Preview",
        "openrouter",
        is_recommended=True,
    ),
    ModelSpec("openai/gpt-oss-120b", "GPT-OSS 120B", "openrouter", is_free=True),
    ModelSpec("openai/gpt-oss-20b", "GPT-OSS 20B", "openrouter", is_free=True),
    ModelSpec("z-ai/glm-4.6:exacto", "GLM-4.6 Exacto", "openrouter"),
    ModelSpec(
        "deepseek/deepseek-v3.2:nitro",
        "DeepSeek V3.2",
        "openrouter",
        is_free=True,
        is_recommended=True,
    ),
    # Anthropic
    ModelSpec("claude-sonnet-4-20250514", "Claude Sonnet 4", "anthropic"),
    ModelSpec("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", "anthropic"),
    ModelSpec(
        "claude-haiku-4-5-20251001",
        "Claude Haiku 4.5",
        "anthropic",
        is_recommended=True,
    ),
)

# Legacy or shorthand ids -> canonical ids
MODEL_ALIASES: dict[str, str] = {
    "claude-4-sonnet": "claude-sonnet-4-20250514",
    "claude-3-sonnet-20240229": "claude-sonnet-4-20250514",
    "claude-sonnet-4.5": "claude-sonnet-4-5-20250929",
    "deepseek/deepseek-v3.2": "deepseek/deepseek-v3.2:nitro",
    "gemini-3-pro-preview": "google/gemini-3-pro-preview",
}

DEFAULT_MODELS: dict[Plan, str] = {
    Plan.PRO: "claude-sonnet-4-20250514",
    Plan.FREE: "deepseek/deepseek-v3.2:nitro",
}

_MODELS_BY_ID = {model.id: model for model in AI_MODELS}


def resolve_model_id(model_id: str) -> str:
    """Map an alias to its canonical id; unknown ids are returned unchanged."""
    model_id = model_id.strip()
    return MODEL_ALIASES.get(model_id, model_id)


def get_model(model_id: str) -> ModelSpec | None:
    """Look up a catalog model by id or alias."""
    return _MODELS_BY_ID.get(resolve_model_id(model_id))


def provider_for(model_id: str) -> str:
    """Return the provider id that serves a model.

    Catalog models use their declared provider. Unknown ids are routed by
    shape: ``claude*`` goes to Anthropic, ``vendor/model`` ids go to
    OpenRouter, everything else to OpenAI.
    """
    model = get_model(model_id)
    if model is not None:
        return model.provider
    model_id = resolve_model_id(model_id)
    if model_id.startswith("claude"):
        return "anthropic"
    if "/" in model_id:
        return "openrouter"
    return "openai"


def litellm_model_name(model_id: str) -> str:
    """Return the model name formatted for LiteLLM routing."""
    model_id = resolve_model_id(model_id)
    provider = provider_for(model_id)
    if provider == "openai":
        return model_id
    return f"{provider}/{model_id}"


def is_model_available(
    model_id: str,
    plan: Plan,
    credentials: Iterable[Credential] = (),
) -> bool:
    """Check whether a model may be used on a plan with the given keys."""
    if plan == Plan.PRO:
        return True

    model = get_model(model_id)
    if model is None:
        return False
    if model.requires_pro:
        return False
    if model.is_free:
        return True

    services = {credential.service for credential in credentials if credential.key}
    # OpenRouter ids always need an OpenRouter key, whatever the vendor prefix says
    if "/" in model.id:
        return "openrouter" in services
    return model.provider in services


def default_model(plan: Plan) -> str:
    return DEFAULT_MODELS[plan]


def selectable_models(plan: Plan, credentials: Iterable[Credential] = ()) -> list[ModelSpec]:
    """Models a user on ``plan`` holding ``credentials`` may pick."""
    credentials = list(credentials)
    return [model for model in AI_MODELS if is_model_available(model.id, plan, credentials)]


def group_models_by_provider() -> list[tuple[ProviderSpec, list[ModelSpec]]]:
    """Group catalog models by provider, in display order."""
    grouped = []
    for provider_id in ("anthropic", "openai", "openrouter"):
        models = [model for model in AI_MODELS if model.provider == provider_id]
        if models:
            grouped.append((PROVIDERS[provider_id], models))
    return grouped
