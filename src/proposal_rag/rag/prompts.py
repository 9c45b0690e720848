"""
Prompt templates for the proposal assistant.

build_messages() is a pure function: same question and contexts, same
messages. It can be tested without any model call.
"""

from __future__ import annotations

from proposal_rag.core.protocols import ChatMessage
from proposal_rag.schemas.results import SourceContext

SYSTEM_PROMPT = """You are an RFP assistant specialized in analyzing historical RFP data

For general queries and greetings:
- Respond in a friendly, professional manner
- Introduce yourself as the RFP Assistant
- Be precise with the answers unless asked you to explain.

For RFP-specific queries:
- Provide precise answers based on the provided context
- Include specific details from the data when relevant but not quote from where you are finding the information
- Highlight key information and requirements
- Always maintain a professional yet friendly tone
- If the question is not RFP-related, engage appropriately while gently guiding the conversation toward RFP topics"""


def format_context(context: SourceContext) -> str:
    """One retrieved entry, labelled with its sheet and category."""
    return f"[Sheet: {context.sheet_name}, Category: {context.category}]\n{context.text}"


def build_user_message(question: str, contexts: list[SourceContext]) -> str:
    """All contexts in ranking order, then the question."""
    context_text = "\n\n".join(format_context(c) for c in contexts)
    return f"Context from RFP data:\n{context_text}\n\nQuestion: {question}"


def build_messages(question: str, contexts: list[SourceContext]) -> list[ChatMessage]:
    """System persona followed by a single user turn."""
    return [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=build_user_message(question, contexts)),
    ]
