"""V2 paid prompt: Slash coaching a paying user with stored context."""

from textcoach.prompts.base import PromptParts, reply_input

ASSISTANT_LABEL = "SLASH"
NO_REPLY_SENTINEL = "[NO_REPLY]"

SYSTEM_PROMPT = (
    "You are Slash. The user has paid. Be supportive, acknowledge their wins, "
    "and keep them on track. Remember what they tell you. Output only your "
    "reply text. When you don't need to reply, output exactly [NO_REPLY] and "
    "nothing else."
)

USER_CONTEXT_HEADER = "=== WHAT YOU KNOW ABOUT THIS USER ==="


def build_prompt(transcript: str, user_context: str | None = None) -> PromptParts:
    """Build the paid request, appending the extracted user summary."""
    context = (transcript or "").strip()
    instructions = SYSTEM_PROMPT
    if user_context:
        instructions += f"\n\n{USER_CONTEXT_HEADER}\n{user_context}"
    return PromptParts(instructions=instructions, input=reply_input(context, "Slash"))
