"""Request-scoped conversation memory.

There is no server-side memory. The client sends its whole notebook log and
its assistant dialogue log with every question, and this module renders both
into a single prompt for the model. The last dialogue entry is always the
question currently being asked, so it is left out of the rendered history.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from agent.core.prompt import (
    CHAT_HISTORY_HEADER,
    CLOSING_INSTRUCTION,
    CONVERSATION_HEADER,
    EMPTY_CHAT_NOTICE,
    QUESTION_TEMPLATE,
    SYSTEM_PROMPT,
)


def _sender_label(item: Dict) -> str:
    return "User (sent)" if item.get("type") == "sent" else "User (received)"


def _role_label(item: Dict) -> str:
    return "User" if item.get("role") == "user" else "Assistant"


def render_chat_history(messages: Optional[Sequence[Dict]]) -> str:
    if not messages:
        return EMPTY_CHAT_NOTICE
    lines = [f"{_sender_label(item)}: {item.get('text', '')}" for item in messages]
    return "\n".join([CHAT_HISTORY_HEADER, *lines])


def render_conversation_history(ai_messages: Optional[Sequence[Dict]]) -> str:
    """Render every dialogue turn except the last one.

    Returns an empty string when there is at most one turn (only the
    question in flight, nothing said before it).
    """
    if not ai_messages or len(ai_messages) <= 1:
        return ""
    lines = [f"{_role_label(item)}: {item.get('text', '')}" for item in ai_messages[:-1]]
    return "\n".join([CONVERSATION_HEADER, *lines])


def build_prompt(
    messages: Optional[Sequence[Dict]],
    ai_messages: Optional[Sequence[Dict]],
    question: str,
) -> str:
    sections: List[str] = [SYSTEM_PROMPT, render_chat_history(messages)]
    conversation = render_conversation_history(ai_messages)
    if conversation:
        sections.append(conversation)
    sections.append(QUESTION_TEMPLATE.format(question=question))
    sections.append(CLOSING_INSTRUCTION)
    return "\n\n".join(sections)
