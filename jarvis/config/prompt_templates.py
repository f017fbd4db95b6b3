"""
Jarvis - Prompt Templates
==========================
Centralised prompt management for the chat engine.  All prompts live
here so they can be versioned and reviewed independently of
application logic.

Exports
-------
SYSTEM_PROMPT, EXCHANGE_TEMPLATE, EXCHANGE_SEPARATOR, CHAT_PROMPT_TEMPLATE.
"""

# ══════════════════════════════════════════════════════════════════════
#  SYSTEM PROMPT
# ══════════════════════════════════════════════════════════════════════

SYSTEM_PROMPT: str = (
    "You are Jarvis, a highly intelligent and efficient personal AI companion. "
    "Utilize the conversation history to provide personalized, context-aware responses. "
    "Be concise, limiting answers to 40 words max. "
    "Prioritize accuracy, relevance, and a friendly, helpful tone. "
    "Adapt your personality to the users preferences over time."
)


# ══════════════════════════════════════════════════════════════════════
#  RETRIEVED CONTEXT
# ══════════════════════════════════════════════════════════════════════
# One retrieved exchange, rendered for the prompt.  Exchanges are joined
# with a blank line, in the order the similarity query returned them.

EXCHANGE_TEMPLATE: str = "User: {user}\nAssistant: {assistant}"

EXCHANGE_SEPARATOR: str = "\n\n"


# ══════════════════════════════════════════════════════════════════════
#  USER TURN
# ══════════════════════════════════════════════════════════════════════

CHAT_PROMPT_TEMPLATE: str = """Conversation history:
{context}

User: {message}
Assistant:"""
