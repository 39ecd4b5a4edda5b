# Copyright (c) Microsoft. All rights reserved.

import asyncio

from agent_samples import setup_logging
from agent_samples.azure import AzureOpenAIChatClient

"""
Hello Agent: the simplest possible agent

This sample creates a minimal agent on top of AzureOpenAIChatClient and runs it
in both non-streaming and streaming modes.

Prerequisites:
- Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY (environment or .env file)
- Optionally set AZURE_OPENAI_DEPLOYMENT_NAME (defaults to gpt-4o-mini)
"""


async def main() -> None:
    setup_logging()

    # <create_agent>
    agent = AzureOpenAIChatClient().as_agent(
        name="HelloAgent",
        instructions="You are a friendly assistant. Keep your answers brief.",
    )
    # </create_agent>

    # <run_agent>
    # Non-streaming: get the complete response at once
    result = await agent.run("What is the capital of France?")
    print(f"Agent: {result}")
    # </run_agent>

    # <run_agent_streaming>
    # Streaming: receive text increments as they are generated
    print("Agent (streaming): ", end="", flush=True)
    async for update in agent.run_stream("Tell me a short story about a robot in three sentences."):
        if update.text:
            print(update.text, end="", flush=True)
    print()
    # </run_agent_streaming>


if __name__ == "__main__":
    asyncio.run(main())
