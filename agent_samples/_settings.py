# Copyright (c) Microsoft. All rights reserved.

"""Settings base class with environment variable resolution.

Values are resolved from constructor arguments first, then environment variables,
then a .env file, and finally the class defaults.
"""

import os
from contextlib import suppress
from typing import Any, ClassVar, Final, get_args, get_origin, get_type_hints

from dotenv import load_dotenv
from pydantic import SecretStr

__all__ = ["AzureOpenAISettings", "SampleSettings"]

DEFAULT_CHAT_DEPLOYMENT_NAME: Final[str] = "gpt-4o-mini"
DEFAULT_EMBEDDING_DEPLOYMENT_NAME: Final[str] = "text-embedding-3-small"
DEFAULT_AZURE_API_VERSION: Final[str] = "2024-10-21"
DEFAULT_AZURE_TOKEN_ENDPOINT: Final[str] = "https://cognitiveservices.azure.com/.default"  # noqa: S105


def _coerce_value(value: str, target_type: Any) -> Any:
    """Coerce a string read from the environment to the annotated field type.

    Raises:
        ValueError: If the value cannot be coerced.
    """
    origin = get_origin(target_type)
    args = get_args(target_type)

    # str | None, int | None, ...
    if origin is not None and type(None) in args:
        for arg in args:
            if arg is type(None):
                continue
            with suppress(ValueError, TypeError):
                return _coerce_value(value, arg)
        return value

    if target_type is SecretStr:
        return SecretStr(value)
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is bool:
        return value.lower() in ("true", "1", "yes", "on")
    return value


class SampleSettings:
    """Base class for settings loaded from the environment.

    Subclasses declare fields as annotated class attributes and set ``env_prefix``.
    A field's environment variable is ``env_prefix + FIELD_NAME`` unless
    ``field_env_vars`` maps the field to another suffix.

    Example:
        ```python
        class MySettings(SampleSettings):
            env_prefix: ClassVar[str] = "MY_APP_"

            api_key: SecretStr | None = None
            timeout: int = 30
        ```
    """

    env_prefix: ClassVar[str] = ""
    field_env_vars: ClassVar[dict[str, str]] = {}

    def __init__(
        self,
        *,
        env_file_path: str | None = None,
        env_file_encoding: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize settings from constructor arguments and the environment.

        Keyword Args:
            env_file_path: Path to a .env file. Defaults to ".env" lookup by python-dotenv.
            env_file_encoding: Encoding of the .env file. Defaults to "utf-8".
            **kwargs: Field values. ``None`` values are ignored.
        """
        encoding = env_file_encoding or "utf-8"
        # Existing environment variables win over the .env file.
        load_dotenv(dotenv_path=env_file_path, encoding=encoding)

        self._env_file_path = env_file_path
        self._env_file_encoding = encoding

        kwargs = {k: v for k, v in kwargs.items() if v is not None}
        unknown = set(kwargs) - set(self._get_field_hints())
        if unknown:
            raise TypeError(f"Unknown settings for {type(self).__name__}: {', '.join(sorted(unknown))}")

        for field_name, field_type in self._get_field_hints().items():
            if field_name in kwargs:
                value = kwargs[field_name]
                if isinstance(value, str) and field_type is not str:
                    with suppress(ValueError, TypeError):
                        value = _coerce_value(value, field_type)
                setattr(self, field_name, value)
                continue

            env_value = os.getenv(self.get_env_var_name(field_name))
            if env_value is not None:
                try:
                    setattr(self, field_name, _coerce_value(env_value, field_type))
                except (ValueError, TypeError):
                    setattr(self, field_name, env_value)
                continue

            setattr(self, field_name, getattr(type(self), field_name, None))

    @property
    def env_file_path(self) -> str | None:
        """The .env file path used for loading settings."""
        return self._env_file_path

    @property
    def env_file_encoding(self) -> str:
        """The encoding used for reading the .env file."""
        return self._env_file_encoding

    @classmethod
    def get_env_var_name(cls, field_name: str) -> str:
        """Return the environment variable that backs a field."""
        suffix = cls.field_env_vars.get(field_name, field_name.upper())
        return f"{cls.env_prefix}{suffix}"

    @classmethod
    def _get_field_hints(cls) -> dict[str, Any]:
        hints: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            if klass in (SampleSettings, object):
                continue
            with suppress(TypeError, NameError):
                for name, hint in get_type_hints(klass).items():
                    if name.startswith("_") or get_origin(hint) is ClassVar:
                        continue
                    hints[name] = hint
        return hints

    def __repr__(self) -> str:
        fields: list[str] = []
        for field_name in self._get_field_hints():
            value = getattr(self, field_name, None)
            if isinstance(value, SecretStr):
                fields.append(f"{field_name}=SecretStr('**********')")
            elif value is not None:
                fields.append(f"{field_name}={value!r}")
        return f"{type(self).__name__}({', '.join(fields)})"


class AzureOpenAISettings(SampleSettings):
    """Azure OpenAI settings.

    Keyword Args:
        endpoint: The Azure OpenAI resource endpoint, e.g. ``https://my-resource.openai.azure.com``.
            Can be set via environment variable AZURE_OPENAI_ENDPOINT.
        api_key: The API key of the resource.
            Can be set via environment variable AZURE_OPENAI_API_KEY.
        chat_deployment_name: The chat model deployment, defaults to ``gpt-4o-mini``.
            Can be set via environment variable AZURE_OPENAI_DEPLOYMENT_NAME.
        embedding_deployment_name: The embedding model deployment, defaults to ``text-embedding-3-small``.
            Can be set via environment variable AZURE_OPENAI_EMBEDDING_DEPLOYMENT.
        api_version: The REST API version, defaults to ``2024-10-21``.
            Can be set via environment variable AZURE_OPENAI_API_VERSION.
        token_endpoint: The Entra ID scope used with a token credential.
            Can be set via environment variable AZURE_OPENAI_TOKEN_ENDPOINT.
        env_file_path: The path to a .env file to load settings from.
        env_file_encoding: The encoding of the .env file, defaults to 'utf-8'.

    Examples:
        .. code-block:: python

            from agent_samples import AzureOpenAISettings

            # Using environment variables
            # Set AZURE_OPENAI_ENDPOINT=https://your-endpoint.openai.azure.com
            # Set AZURE_OPENAI_API_KEY=your-key
            settings = AzureOpenAISettings()

            # Or passing parameters directly
            settings = AzureOpenAISettings(endpoint="https://your-endpoint.openai.azure.com", api_key="your-key")
    """

    env_prefix: ClassVar[str] = "AZURE_OPENAI_"
    field_env_vars: ClassVar[dict[str, str]] = {
        "chat_deployment_name": "DEPLOYMENT_NAME",
        "embedding_deployment_name": "EMBEDDING_DEPLOYMENT",
    }

    endpoint: str | None = None
    api_key: SecretStr | None = None
    chat_deployment_name: str = DEFAULT_CHAT_DEPLOYMENT_NAME
    embedding_deployment_name: str = DEFAULT_EMBEDDING_DEPLOYMENT_NAME
    api_version: str = DEFAULT_AZURE_API_VERSION
    token_endpoint: str = DEFAULT_AZURE_TOKEN_ENDPOINT


