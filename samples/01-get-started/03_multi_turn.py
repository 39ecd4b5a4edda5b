# Copyright (c) Microsoft. All rights reserved.

import asyncio

from agent_samples import setup_logging
from agent_samples.azure import AzureOpenAIChatClient

"""
Multi-Turn Conversations: use AgentThread to keep context

This sample keeps conversation history across calls by passing the same thread
to every run. The thread is owned by the caller; the agent itself is stateless.
"""


async def main() -> None:
    setup_logging()

    # <create_agent>
    agent = AzureOpenAIChatClient().as_agent(
        name="ConversationAgent",
        instructions="You are a friendly assistant. Keep your answers brief.",
    )
    # </create_agent>

    # <multi_turn>
    thread = agent.get_new_thread()

    result = await agent.run("My name is Kim and I love hiking.", thread=thread)
    print(f"Agent: {result}\n")

    # The agent should remember the user's name and hobby
    result = await agent.run("What do you remember about me?", thread=thread)
    print(f"Agent: {result}\n")

    # Streaming turns are appended to the thread once the stream completes
    print("Agent (streaming): ", end="", flush=True)
    async for update in agent.run_stream("Suggest a trail for this weekend.", thread=thread):
        print(update.text, end="", flush=True)
    print()

    messages = await thread.list_messages()
    print(f"\nThread now holds {len(messages)} messages.")
    # </multi_turn>


if __name__ == "__main__":
    asyncio.run(main())
