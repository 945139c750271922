"""Types shared by the prompt modules."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptParts:
    """Model request text: system instructions plus the user-turn input."""

    instructions: str
    input: str


def with_director_note(system_prompt: str, nudge: str | None) -> str:
    """Append a DIRECTOR NOTE section when a nudge applies."""
    if not nudge:
        return system_prompt
    return f"{system_prompt}\n\nDIRECTOR NOTE:\n{nudge}"


def reply_input(context: str, persona: str) -> str:
    """Build the input block: transcript followed by the reply instruction."""
    return "\n".join([
        context,
        "",
        f"Reply as {persona} to the most recent USER message above. "
        "Output only your response text.",
    ])
