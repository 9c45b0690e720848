"""
Text generation - turns a chat prompt into an answer.

ChatOpenAIGenerator converts our ChatMessage list into LangChain messages and
invokes a ChatOpenAI model once. LangChain handles the bounded retry against
the API; anything still failing surfaces as GenerationError.
"""

from __future__ import annotations

import logging

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from proposal_rag.core.errors import GenerationError
from proposal_rag.core.protocols import ChatMessage, TextGenerator

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def to_langchain_messages(messages: list[ChatMessage]) -> list[BaseMessage]:
    """Map ChatMessage roles onto LangChain message classes."""
    converted = []
    for message in messages:
        try:
            message_cls = _MESSAGE_TYPES[message.role]
        except KeyError:
            raise ValueError(f"Unsupported message role: {message.role!r}")
        converted.append(message_cls(content=message.content))
    return converted


class ChatOpenAIGenerator:
    """
    Chat completion over LangChain's ChatOpenAI.

    The model is injectable so tests can pass a stub chat model.
    """

    def __init__(
        self,
        model: str = "gpt-4",
        temperature: float = 0.0,
        api_key: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 3,
        llm: ChatOpenAI | None = None,
    ):
        self._model = model
        self._llm = llm or ChatOpenAI(
            model=model,
            temperature=temperature,
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
        )

    @property
    def model(self) -> str:
        return self._model

    def complete(self, messages: list[ChatMessage]) -> str:
        """Invoke the model once and return the reply text."""
        try:
            response = self._llm.invoke(to_langchain_messages(messages))
        except Exception as exc:
            # LangChain surfaces provider errors with the provider's own types
            raise GenerationError(f"Generation request failed ({self._model}): {exc}") from exc

        content = response.content
        if isinstance(content, list):
            # Multi-part replies: keep the text parts in order
            content = "".join(
                part if isinstance(part, str) else part.get("text", "")
                for part in content
            )
        return content


class MockGenerator:
    """
    Generator double that answers without calling a model.

    Records every prompt it receives so tests can inspect what was sent.
    NOT for production use - only for testing/development.
    """

    def __init__(self, answer: str | None = None):
        self._answer = answer
        self.calls: list[list[ChatMessage]] = []

    @property
    def model(self) -> str:
        return "mock"

    def complete(self, messages: list[ChatMessage]) -> str:
        self.calls.append(list(messages))
        if self._answer is not None:
            return self._answer
        last_user = next((m.content for m in reversed(messages) if m.role == "user"), "")
        return f"[mock answer] {last_user.splitlines()[-1] if last_user else ''}"


def get_text_generator(
    model: str = "gpt-4",
    temperature: float = 0.0,
    api_key: str | None = None,
    timeout: float = 60.0,
    max_retries: int = 3,
    use_mock: bool = False,
) -> TextGenerator:
    """
    Factory function to get the appropriate text generator.

    Args:
        use_mock: If True, return MockGenerator (for testing)
    """
    if use_mock:
        return MockGenerator()
    return ChatOpenAIGenerator(
        model=model,
        temperature=temperature,
        api_key=api_key,
        timeout=timeout,
        max_retries=max_retries,
    )
