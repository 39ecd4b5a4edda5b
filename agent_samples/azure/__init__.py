# Copyright (c) Microsoft. All rights reserved.

from .._settings import AzureOpenAISettings as AzureOpenAISettings
from ._chat_client import AzureOpenAIChatClient as AzureOpenAIChatClient
from ._embedding_generator import AzureOpenAIEmbeddingGenerator as AzureOpenAIEmbeddingGenerator
