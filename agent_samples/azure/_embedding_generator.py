# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Mapping, Sequence
from typing import Any

from azure.core.credentials import TokenCredential
from openai import AsyncAzureOpenAI

from .._settings import AzureOpenAISettings
from ._shared import AzureOpenAIConfigMixin, translate_openai_error

__all__ = ["AzureOpenAIEmbeddingGenerator"]


class AzureOpenAIEmbeddingGenerator(AzureOpenAIConfigMixin):
    """Generates embeddings with an Azure OpenAI embedding deployment.

    Examples:
        .. code-block:: python

            from agent_samples.azure import AzureOpenAIEmbeddingGenerator

            generator = AzureOpenAIEmbeddingGenerator(deployment_name="text-embedding-3-small")
            vectors = await generator.generate(["first passage", "second passage"])
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        deployment_name: str | None = None,
        endpoint: str | None = None,
        api_version: str | None = None,
        token_endpoint: str | None = None,
        credential: TokenCredential | None = None,
        dimensions: int | None = None,
        default_headers: Mapping[str, str] | None = None,
        async_client: AsyncAzureOpenAI | None = None,
        env_file_path: str | None = None,
        env_file_encoding: str | None = None,
    ) -> None:
        """Initialize an Azure OpenAI embedding generator.

        Keyword Args:
            api_key: The API key.
                Can also be set via environment variable AZURE_OPENAI_API_KEY.
            deployment_name: The embedding deployment name.
                Can also be set via environment variable AZURE_OPENAI_EMBEDDING_DEPLOYMENT.
            endpoint: The deployment endpoint.
                Can also be set via environment variable AZURE_OPENAI_ENDPOINT.
            api_version: The deployment API version.
                Can also be set via environment variable AZURE_OPENAI_API_VERSION.
            token_endpoint: The scope of the Entra ID token requested through ``credential``.
            credential: The Azure credential for authentication, used when no API key is set.
            dimensions: Requested embedding size, for models that support shortening.
            default_headers: Default headers for HTTP requests.
            async_client: An existing client to use.
            env_file_path: Use the environment settings file as a fallback to using env vars.
            env_file_encoding: The encoding of the environment settings file, defaults to 'utf-8'.

        Raises:
            ServiceInitializationError: If the endpoint or the authentication is missing.
        """
        settings = AzureOpenAISettings(
            api_key=api_key,
            endpoint=endpoint,
            embedding_deployment_name=deployment_name,
            api_version=api_version,
            token_endpoint=token_endpoint,
            env_file_path=env_file_path,
            env_file_encoding=env_file_encoding,
        )
        super().__init__(
            settings=settings,
            deployment_name=settings.embedding_deployment_name,
            credential=credential,
            default_headers=default_headers,
            client=async_client,
        )
        self.dimensions = dimensions

    async def generate(self, texts: Sequence[str], **kwargs: Any) -> list[list[float]]:
        """Embed each text, returning one vector per text in input order.

        Raises:
            ServiceResponseException: If the service call fails.
        """
        if not texts:
            return []
        options: dict[str, Any] = {"input": list(texts), "model": self.deployment_name, **kwargs}
        if self.dimensions is not None:
            options.setdefault("dimensions", self.dimensions)
        try:
            response = await self.client.embeddings.create(**options)
        except Exception as ex:
            raise translate_openai_error(ex, f"{type(self).__name__} service failed to generate embeddings") from ex
        return [list(item.embedding) for item in sorted(response.data, key=lambda item: item.index)]
