# Copyright (c) Microsoft. All rights reserved.

import asyncio

from agent_samples import build_index, build_prompt, retrieve, setup_logging
from agent_samples.azure import AzureOpenAIChatClient, AzureOpenAIEmbeddingGenerator
from agent_samples.exceptions import ServiceResponseException

"""
RAG: Retrieval-Augmented Generation over an in-memory index

1) Each document is embedded and stored in an InMemoryVectorIndex.
2) Each question is embedded and the top 3 chunks are found by cosine similarity.
3) The chunks are passed to the agent as context for the answer.

A production system would swap the in-memory index for Azure AI Search, Qdrant or similar.

Prerequisites:
- AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY
- AZURE_OPENAI_EMBEDDING_DEPLOYMENT (defaults to text-embedding-3-small)
"""

# <sample_documents>
SAMPLE_DOCUMENTS = [
    (
        "Company",
        "Contoso Inc. is a B2B SaaS company founded in Seoul in 2010. "
        "It has 450 employees and specializes in cloud-based ERP solutions.",
    ),
    (
        "Product: CloudERP Pro",
        "CloudERP Pro is Contoso's flagship product with finance, HR and supply chain modules. "
        "It is sold as a monthly subscription and comes with a 99.9% SLA.",
    ),
    (
        "Support policy",
        "Standard support is available on weekdays from 09:00 to 18:00 KST; premium plan customers get 24/7 support. "
        "The average first response time is under two hours.",
    ),
    (
        "Pricing",
        "The CloudERP Pro base plan starts at 500,000 KRW per month for up to 10 users. "
        "Enterprise plans are priced by negotiation based on the number of users.",
    ),
    (
        "Security certifications",
        "Contoso holds ISO 27001 and SOC 2 Type II certifications, "
        "and all data is stored encrypted in data centers in the Republic of Korea.",
    ),
]
# </sample_documents>

QUESTIONS = [
    "When and where was Contoso founded?",
    "What SLA does CloudERP Pro offer?",
    "Which plan do I need for 24-hour support?",
    "What security certifications does Contoso hold?",
]


async def main() -> None:
    setup_logging()

    embedding_generator = AzureOpenAIEmbeddingGenerator()

    # <build_index>
    print("[1/3] Indexing documents...")
    index = await build_index(SAMPLE_DOCUMENTS, embedding_generator)
    print(f"Indexed {len(index)} chunks of dimension {index.dimension}.\n")
    # </build_index>

    agent = AzureOpenAIChatClient().as_agent(
        name="RAGAgent",
        instructions=(
            "You are a Contoso customer support agent. "
            "Answer only from the provided context (document excerpts). "
            "If the context does not contain the answer, reply 'I could not find that information.'"
        ),
    )

    # <rag_questions>
    print("[2/3] Answering questions (relevant documents are retrieved for every question)\n")
    for question in QUESTIONS:
        context_chunks = await retrieve(index, embedding_generator, question, top_k=3)
        print(f"Q: {question}")
        print("A: ", end="", flush=True)
        async for update in agent.run_stream(build_prompt(question, context_chunks)):
            print(update.text, end="", flush=True)
        print("\n")
    # </rag_questions>

    # <interactive>
    print("[3/3] Interactive mode (type 'quit' to exit)\n")
    while True:
        user_input = (await asyncio.to_thread(input, "Question: ")).strip()
        if not user_input:
            continue
        if user_input.lower() == "quit":
            break
        try:
            chunks = await retrieve(index, embedding_generator, user_input, top_k=3)
            print("Answer: ", end="", flush=True)
            async for update in agent.run_stream(build_prompt(user_input, chunks)):
                print(update.text, end="", flush=True)
            print("\n")
        except ServiceResponseException as ex:
            print(f"\n[error] Azure OpenAI request failed [{ex.status_code}]: {ex}")
    # </interactive>

    print("RAG sample finished.")


if __name__ == "__main__":
    asyncio.run(main())
