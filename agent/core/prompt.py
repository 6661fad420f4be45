SYSTEM_PROMPT = (
    "You are a helpful AI assistant. The user is using a personal chat application "
    "where they can send and receive messages (both from themselves - it's for "
    "practicing conversations or taking notes)."
)

CHAT_HISTORY_HEADER = "Here is the full chat history:"
EMPTY_CHAT_NOTICE = "The chat is currently empty (no messages yet)."
CONVERSATION_HEADER = "Our previous conversation:"

QUESTION_TEMPLATE = 'The user is now asking you: "{question}"'

CLOSING_INSTRUCTION = (
    "Please help them with their question. You can reference the chat history if "
    "relevant to their question. Be helpful, concise, and friendly."
)
