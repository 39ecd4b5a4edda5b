# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Mapping
from typing import Any

from azure.core.credentials import TokenCredential
from azure.identity import get_bearer_token_provider
from openai import (
    APIConnectionError,
    AsyncAzureOpenAI,
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
)

from .._logging import get_logger
from .._settings import AzureOpenAISettings
from ..exceptions import (
    ServiceAuthenticationError,
    ServiceConnectionError,
    ServiceInitializationError,
    ServiceNotFoundError,
    ServiceRateLimitError,
    ServiceResponseException,
)

logger = get_logger("agent_samples.azure")

__all__ = ["AzureOpenAIConfigMixin", "create_async_client", "translate_openai_error"]


def create_async_client(
    settings: AzureOpenAISettings,
    credential: TokenCredential | None = None,
    default_headers: Mapping[str, str] | None = None,
) -> AsyncAzureOpenAI:
    """Create the SDK client from settings.

    An API key takes precedence over a credential. With a credential, tokens for
    ``settings.token_endpoint`` are fetched through a bearer token provider.

    Raises:
        ServiceInitializationError: If the endpoint is missing, or neither an API key nor a credential is given.
    """
    if not settings.endpoint:
        raise ServiceInitializationError(
            "Azure OpenAI endpoint is required. Set AZURE_OPENAI_ENDPOINT or pass endpoint."
        )

    args: dict[str, Any] = {
        "azure_endpoint": settings.endpoint,
        "api_version": settings.api_version,
        "default_headers": dict(default_headers) if default_headers else None,
    }
    if settings.api_key is not None:
        args["api_key"] = settings.api_key.get_secret_value()
    elif credential is not None:
        args["azure_ad_token_provider"] = get_bearer_token_provider(credential, settings.token_endpoint)
    else:
        raise ServiceInitializationError(
            "Azure OpenAI authentication is required. Set AZURE_OPENAI_API_KEY, pass api_key or pass a credential."
        )
    return AsyncAzureOpenAI(**args)


def translate_openai_error(ex: Exception, message: str) -> ServiceResponseException:
    """Map an SDK exception to the service exception hierarchy.

    The caller raises the result ``from ex`` so the SDK exception stays available as ``__cause__``.
    """
    status_code: int | None = getattr(ex, "status_code", None)
    full_message = f"{message}: {ex}"
    if isinstance(ex, (AuthenticationError, PermissionDeniedError)):
        return ServiceAuthenticationError(full_message, status_code=status_code)
    if isinstance(ex, NotFoundError):
        return ServiceNotFoundError(full_message, status_code=status_code)
    if isinstance(ex, RateLimitError):
        return ServiceRateLimitError(full_message, status_code=status_code)
    # Also covers APITimeoutError.
    if isinstance(ex, APIConnectionError):
        return ServiceConnectionError(full_message, status_code=status_code)
    return ServiceResponseException(full_message, status_code=status_code)


class AzureOpenAIConfigMixin:
    """Internal class for configuring a connection to an Azure OpenAI service."""

    def __init__(
        self,
        *,
        settings: AzureOpenAISettings,
        deployment_name: str,
        credential: TokenCredential | None = None,
        default_headers: Mapping[str, str] | None = None,
        client: AsyncAzureOpenAI | None = None,
        **kwargs: Any,
    ) -> None:
        """Internal class for configuring a connection to an Azure OpenAI service.

        Keyword Args:
            settings: The resolved Azure OpenAI settings.
            deployment_name: Name of the deployment.
            credential: Azure credential for authentication.
            default_headers: Default headers for HTTP requests.
            client: An existing client to use. Skips endpoint and authentication checks.
            kwargs: Additional keyword arguments.
        """
        if client is None:
            client = create_async_client(settings, credential=credential, default_headers=default_headers)
        self.client = client
        self.deployment_name = deployment_name
        self.endpoint = settings.endpoint
        self.api_version = settings.api_version
        logger.debug("Azure OpenAI client configured for deployment %s.", deployment_name)
        super().__init__(**kwargs)

    def service_url(self) -> str:
        return self.endpoint or "Unknown"
