# Copyright (c) Microsoft. All rights reserved.

from collections.abc import AsyncIterable, Mapping, Sequence
from typing import Any

from azure.core.credentials import TokenCredential
from openai import AsyncAzureOpenAI
from openai.types.chat import ChatCompletion, ChatCompletionChunk

from .._clients import BaseChatClient
from .._logging import get_logger
from .._settings import AzureOpenAISettings
from .._types import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatResponseUpdate,
    Role,
    UsageDetails,
    prepend_instructions_to_messages,
)
from ..exceptions import InvalidArgumentError
from ._shared import AzureOpenAIConfigMixin, translate_openai_error

logger = get_logger("agent_samples.azure")

__all__ = ["AzureOpenAIChatClient"]

OPTION_TRANSLATIONS: dict[str, str] = {
    "model_id": "model",
    "max_tokens": "max_completion_tokens",
}


class AzureOpenAIChatClient(AzureOpenAIConfigMixin, BaseChatClient):
    """Azure OpenAI chat completion client.

    Examples:
        .. code-block:: python

            from agent_samples.azure import AzureOpenAIChatClient

            # Using environment variables
            # Set AZURE_OPENAI_ENDPOINT=https://your-endpoint.openai.azure.com
            # Set AZURE_OPENAI_API_KEY=your-key
            client = AzureOpenAIChatClient()

            # Or passing parameters directly
            client = AzureOpenAIChatClient(
                endpoint="https://your-endpoint.openai.azure.com",
                deployment_name="gpt-4o-mini",
                api_key="your-key",
            )

            # Or using Entra ID
            from azure.identity import AzureCliCredential

            client = AzureOpenAIChatClient(credential=AzureCliCredential())

            response = await client.get_response("Hello!")
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
        default_headers: Mapping[str, str] | None = None,
        async_client: AsyncAzureOpenAI | None = None,
        env_file_path: str | None = None,
        env_file_encoding: str | None = None,
    ) -> None:
        """Initialize an Azure OpenAI chat completion client.

        Keyword Args:
            api_key: The API key. If provided, will override the value in the env vars or .env file.
                Can also be set via environment variable AZURE_OPENAI_API_KEY.
            deployment_name: The deployment name. If provided, will override the value
                in the env vars or .env file.
                Can also be set via environment variable AZURE_OPENAI_DEPLOYMENT_NAME.
            endpoint: The deployment endpoint. If provided will override the value
                in the env vars or .env file.
                Can also be set via environment variable AZURE_OPENAI_ENDPOINT.
            api_version: The deployment API version. If provided will override the value
                in the env vars or .env file.
                Can also be set via environment variable AZURE_OPENAI_API_VERSION.
            token_endpoint: The scope of the Entra ID token requested through ``credential``.
            credential: The Azure credential for authentication, used when no API key is set.
            default_headers: The default headers mapping of string keys to
                string values for HTTP requests.
            async_client: An existing client to use.
            env_file_path: Use the environment settings file as a fallback to using env vars.
            env_file_encoding: The encoding of the environment settings file, defaults to 'utf-8'.

        Raises:
            ServiceInitializationError: If the endpoint or the authentication is missing.
        """
        settings = AzureOpenAISettings(
            api_key=api_key,
            endpoint=endpoint,
            chat_deployment_name=deployment_name,
            api_version=api_version,
            token_endpoint=token_endpoint,
            env_file_path=env_file_path,
            env_file_encoding=env_file_encoding,
        )
        super().__init__(
            settings=settings,
            deployment_name=settings.chat_deployment_name,
            credential=credential,
            default_headers=default_headers,
            client=async_client,
        )

    async def _inner_get_response(
        self,
        *,
        messages: list[ChatMessage],
        options: ChatOptions,
        **kwargs: Any,
    ) -> ChatResponse:
        options_dict = self._prepare_options(messages, options)
        try:
            response = await self.client.chat.completions.create(stream=False, **options_dict)
        except Exception as ex:
            raise translate_openai_error(ex, f"{type(self).__name__} service failed to complete the prompt") from ex
        return self._parse_response_from_openai(response)

    async def _inner_get_streaming_response(
        self,
        *,
        messages: list[ChatMessage],
        options: ChatOptions,
        **kwargs: Any,
    ) -> AsyncIterable[ChatResponseUpdate]:
        options_dict = self._prepare_options(messages, options)
        try:
            stream = await self.client.chat.completions.create(stream=True, **options_dict)
        except Exception as ex:
            raise translate_openai_error(ex, f"{type(self).__name__} service failed to complete the prompt") from ex

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                yield self._parse_response_update_from_openai(chunk)
        except Exception as ex:
            raise translate_openai_error(ex, f"{type(self).__name__} service failed while streaming") from ex
        finally:
            # Releases the HTTP connection when the consumer stops early.
            await stream.close()

    def _prepare_messages_for_openai(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        return [{"role": message.role.value, "content": message.text} for message in messages]

    def _prepare_options(self, messages: Sequence[ChatMessage], options: ChatOptions) -> dict[str, Any]:
        if not messages:
            raise InvalidArgumentError("Messages are required for chat completions.")
        messages = prepend_instructions_to_messages(messages, options.get("instructions"))

        run_options: dict[str, Any] = {k: v for k, v in options.items() if v is not None and k != "instructions"}
        for old_key, new_key in OPTION_TRANSLATIONS.items():
            if old_key in run_options:
                run_options[new_key] = run_options.pop(old_key)
        if not run_options.get("model"):
            run_options["model"] = self.deployment_name
        run_options["messages"] = self._prepare_messages_for_openai(messages)
        return run_options

    def _parse_response_from_openai(self, response: ChatCompletion) -> ChatResponse:
        messages: list[ChatMessage] = []
        finish_reason: str | None = None
        for choice in response.choices:
            if choice.finish_reason:
                finish_reason = choice.finish_reason
            messages.append(ChatMessage(role=Role.ASSISTANT, text=choice.message.content or ""))
        usage = (
            UsageDetails(
                input_token_count=response.usage.prompt_tokens,
                output_token_count=response.usage.completion_tokens,
                total_token_count=response.usage.total_tokens,
            )
            if response.usage
            else None
        )
        logger.debug("Chat completion %s finished with %s.", response.id, finish_reason)
        return ChatResponse(
            messages=messages,
            response_id=response.id,
            model_id=response.model,
            finish_reason=finish_reason,
            usage=usage,
            raw_representation=response,
        )

    def _parse_response_update_from_openai(self, chunk: ChatCompletionChunk) -> ChatResponseUpdate:
        choice = chunk.choices[0]
        return ChatResponseUpdate(
            text=choice.delta.content or "",
            role=Role.ASSISTANT,
            response_id=chunk.id,
            model_id=chunk.model,
            finish_reason=choice.finish_reason,
            raw_representation=chunk,
        )
