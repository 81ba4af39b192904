"""Structured generation client.

Provides a schema-constrained LLM call for a single model candidate using
LiteLLM, with in-candidate retries for transient provider failures and
classification of provider errors into the generation error taxonomy.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import warnings
from typing import Any, Protocol, TypeVar

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    APIError,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)
from pydantic import BaseModel, ValidationError

from resume_ai.config.settings import Settings, get_settings
from resume_ai.generation.catalog import (
    PROVIDERS,
    get_model,
    litellm_model_name,
    provider_for,
)
from resume_ai.generation.errors import (
    CredentialError,
    GenerationError,
    ProviderError,
    SchemaValidationError,
    TransientProviderError,
)
from resume_ai.generation.models import (
    GenerationRequest,
    ModelCandidate,
    SubscriptionContext,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

warnings.filterwarnings(
    "ignore",
    message=r"(?s)^Pydantic serializer warnings:.*",
    category=UserWarning,
)

# LiteLLM loads `.env` into the process environment in DEV mode.
os.environ.setdefault("LITELLM_MODE", "PRODUCTION")


class GenerationClient(Protocol):
    """Schema-constrained generation against one model candidate."""

    async def generate_structured(
        self,
        candidate: ModelCandidate,
        request: GenerationRequest,
        context: SubscriptionContext,
        max_internal_retries: int | None = None,
    ) -> BaseModel: ...


class StructuredGenerationClient:
    """LiteLLM-backed structured generation client.

    The credential tier depends on the caller's plan: keys supplied with the
    candidate always win; the platform key from settings is only used for pro
    accounts and for free-tier catalog models.
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize the client.

        Args:
            settings: Optional Settings. Uses global settings if not provided.
        """
        self.settings = settings or get_settings()

    def resolve_api_key(
        self, candidate: ModelCandidate, context: SubscriptionContext
    ) -> str:
        """Pick the API key to call ``candidate`` with.

        Raises:
            CredentialError: If neither the caller nor the platform may supply a key.
        """
        service = provider_for(candidate.model_id)
        credential = candidate.credential_for(service)
        if credential is not None:
            return credential.key

        model = get_model(candidate.model_id)
        platform_allowed = context.is_pro or (model is not None and model.is_free)
        if platform_allowed:
            platform_key = self.settings.platform_api_key(service)
            if platform_key:
                return platform_key

        provider = PROVIDERS.get(service)
        if provider is None:
            raise CredentialError(f"{service} API key not found for model {candidate.model_id}")
        raise CredentialError(
            f"{provider.name} API key not found for model {candidate.model_id}. "
            f"Create one at {provider.api_link}"
        )

    async def generate_structured(
        self,
        candidate: ModelCandidate,
        request: GenerationRequest,
        context: SubscriptionContext,
        max_internal_retries: int | None = None,
    ) -> BaseModel:
        """Generate an object matching ``request.output_schema`` with one model.

        Args:
            candidate: Model to call and the caller's credentials.
            request: Prompts, schema and temperature.
            context: Plan of the account, selects the credential tier.
            max_internal_retries: Retries on transient failures. Defaults to
                ``settings.llm_max_internal_retries``.

        Returns:
            Validated instance of ``request.output_schema``.

        Raises:
            CredentialError: Missing or rejected API key.
            TransientProviderError: Transient failures outlasted the retry budget.
            SchemaValidationError: The response did not match the schema.
            ProviderError: Any other provider failure.
        """
        if max_internal_retries is None:
            max_internal_retries = self.settings.llm_max_internal_retries

        api_key = self.resolve_api_key(candidate, context)

        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.user_prompt})

        for attempt in range(max_internal_retries + 1):
            try:
                response = await self._call_completion(
                    model_id=candidate.model_id,
                    api_key=api_key,
                    messages=messages,
                    response_format=request.output_schema,
                    temperature=request.temperature,
                )
            except GenerationError:
                raise
            except Exception as e:
                error = self._classify_exception(e)
                if not isinstance(error, TransientProviderError):
                    raise error from e
                if attempt >= max_internal_retries:
                    raise TransientProviderError(
                        f"{candidate.model_id} failed after {attempt + 1} attempt(s): {e}",
                        e,
                    ) from e

                is_rate_limit = isinstance(e, RateLimitError) or _looks_rate_limited(e)
                base_wait = (
                    self.settings.llm_rate_limit_base_wait
                    if is_rate_limit
                    else self.settings.llm_retry_base_wait
                )
                wait_time = base_wait * (attempt + 1)
                logger.warning(
                    "LLM call to %s failed (attempt %s), retrying in %.1fs: %s",
                    candidate.model_id,
                    attempt + 1,
                    wait_time,
                    e,
                )
                await asyncio.sleep(wait_time)
                continue

            return self._parse_response(response, request.output_schema)

        raise TransientProviderError(f"{candidate.model_id} failed: retry budget exhausted")

    async def _call_completion(
        self,
        *,
        model_id: str,
        api_key: str,
        messages: list[dict[str, str]],
        response_format: type[BaseModel],
        temperature: float,
    ):
        """Make the actual LLM API call."""
        kwargs: dict[str, Any] = {
            "model": litellm_model_name(model_id),
            "messages": messages,
            "timeout": self.settings.llm_timeout,
            "temperature": temperature,
            "api_key": api_key,
            "response_format": response_format,
            # Some reasoning models reject non-default temperatures
            "drop_params": True,
            "num_retries": 0,
        }
        return await acompletion(**kwargs)

    def _classify_exception(self, error: Exception) -> GenerationError:
        """Map a provider exception onto the generation error taxonomy."""
        if isinstance(error, (AuthenticationError, PermissionDeniedError)):
            return CredentialError(f"Provider rejected credentials: {error}", error)
        if isinstance(
            error,
            (
                Timeout,
                RateLimitError,
                APIConnectionError,
                ServiceUnavailableError,
                InternalServerError,
            ),
        ):
            return TransientProviderError(f"Transient provider error: {error}", error)

        status_code = getattr(error, "status_code", None)
        if isinstance(status_code, int):
            if status_code in (401, 403):
                return CredentialError(f"Provider rejected credentials: {error}", error)
            if status_code == 429 or status_code >= 500:
                return TransientProviderError(f"Transient provider error: {error}", error)
        if isinstance(error, APIError):
            return ProviderError(f"Provider error: {error}", error)
        if _looks_rate_limited(error):
            return TransientProviderError(f"Transient provider error: {error}", error)
        return ProviderError(f"LLM call failed: {error}", error)

    def _parse_response(self, response, output_model: type[T]) -> T:
        """Parse and validate an LLM response.

        Raises:
            SchemaValidationError: If parsing or validation fails.
        """
        message = response.choices[0].message
        content = getattr(message, "content", None)

        # Some providers return structured output as tool call arguments with no content.
        if content is None:
            tool_calls = getattr(message, "tool_calls", None) or []
            if tool_calls:
                function = getattr(tool_calls[0], "function", None)
                arguments = getattr(function, "arguments", None)
                if isinstance(arguments, str) and arguments.strip():
                    content = arguments

        if content is None:
            raise SchemaValidationError("LLM returned no content to parse.")

        content = extract_json(content)

        try:
            return output_model.model_validate_json(content)
        except ValidationError as e:
            raise SchemaValidationError(
                f"Failed to parse LLM response - validation error: {e}", e
            ) from e
        except ValueError as e:
            raise SchemaValidationError(f"Failed to parse LLM response as JSON: {e}", e) from e


def _looks_rate_limited(error: Exception) -> bool:
    text = str(error).lower()
    return "rate_limit" in text or "rate limit" in text or "429" in text


def extract_json(content: str) -> str:
    """Extract JSON from a response, handling markdown fences and surrounding prose.

    Args:
        content: Raw response content.

    Returns:
        The first decodable JSON object or array, re-serialized, or the
        stripped content if none could be located.
    """
    content = content.strip()

    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1 :]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()

    # Models sometimes wrap the JSON in reasoning text before or after it.
    decoder = json.JSONDecoder()
    for idx, ch in enumerate(content):
        if ch not in "{[":
            continue
        try:
            value, _ = decoder.raw_decode(content, idx)
        except ValueError:
            continue
        return json.dumps(value)

    return content
