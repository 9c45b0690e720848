"""Generation module - chat completion clients."""

from proposal_rag.generation.chat_generator import (
    ChatOpenAIGenerator,
    MockGenerator,
    get_text_generator,
    to_langchain_messages,
)

__all__ = [
    "ChatOpenAIGenerator",
    "MockGenerator",
    "get_text_generator",
    "to_langchain_messages",
]
