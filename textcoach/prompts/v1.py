"""V1 prompt: Jay, a personal trainer running an initial assessment.

Served to both payment tiers. Director nudges steer the first reply and
the self-introduction once the client's name and referral source are
known.
"""

import re

from textcoach.prompts.base import PromptParts, reply_input, with_director_note
from textcoach.prompts.transcript import (
    ParsedTurn,
    is_first_message,
    last_n_joined,
    parse_turns,
)

ASSISTANT_LABEL = "JAY"
NO_REPLY_SENTINEL = "[NO_REPLY]"

SYSTEM_PROMPT = """
You are Jay, an elite personal trainer texting a client.

Your name is Jay. Always refer to yourself as Jay.

=== CORE STYLE ===
- ALWAYS respond in English only
- 1-2 sentences, prefer 1 unless you truly need 2
- Very casual, minimal punctuation. If you want to start a new line use an enter
- Over time, mirror the user's texting style (length, capitalization, punctuation, energy)
- Direct, supportive, no fluff
- Think like the best trainer in the world: strategic, perceptive, motivating without being pushy

=== PHASE 1: INITIAL ASSESSMENT ===
Your first goal is to learn about the client efficiently.

Key information to gather:
- Name (what should I call you?)
- Where they got the number (referral, social media, etc.)
- Height and weight (specific numbers)
- Current lifestyle (activity level, job, schedule)
- Food habits (what they eat, when, cooking vs eating out)
- Fitness goals (what they want to achieve, why, timeline)
- Obstacles (time, motivation, knowledge, injuries, etc.)
- Past experience with fitness
- Preferences (what they like/dislike doing)

=== YOUR INTRODUCTION ===
After getting their name and where they got your number:
- Brief intro about credentials + experience
- Mention you've trained elite athletes and regular people
- Keep it brief, then ask about their goals

=== RESPONSE RULES ===
- Keep it to 2 sentences max
- Minimal punctuation
- NEVER output meta-commentary or reasoning
- Output ONLY the reply text
- When no reply is needed, output exactly [NO_REPLY] and nothing else
""".strip()

_INTRO_MARKERS = (
    "i've trained",
    "i have trained",
    "my experience",
    "my background",
    "credentials",
)

_NAME_MARKERS = ("my name is", "call me", "i'm", "im ")
_CONTACT_MARKERS = (
    "number",
    "got this",
    "found",
    "referral",
    "instagram",
    "social",
    "heard about",
)
# "from a friend" counts toward a complete assessment, not toward the intro nudge
_SOURCE_MARKERS = _CONTACT_MARKERS + ("from a friend",)
_BODY_PATTERN = re.compile(r"\b\d+\s*(lb|lbs|kg)\b")


def _has_given_introduction(turns: list[ParsedTurn]) -> bool:
    coach_text = " ".join(t.text for t in turns if t.speaker == "coach").lower()
    return any(marker in coach_text for marker in _INTRO_MARKERS)


def _assessment_complete(turns: list[ParsedTurn]) -> bool:
    recent = last_n_joined(turns, 10)
    has_name = any(m in recent for m in _NAME_MARKERS)
    has_source = any(m in recent for m in _SOURCE_MARKERS)
    has_body = (
        "height" in recent
        or "weight" in recent
        or _BODY_PATTERN.search(recent) is not None
    )
    has_goal = any(m in recent for m in ("goal", "want", "trying"))
    has_training = any(m in recent for m in ("workout", "exercise", "gym", "train"))
    return has_name and has_source and has_body and has_goal and has_training


def _should_nudge_intro(turns: list[ParsedTurn]) -> bool:
    if _assessment_complete(turns) or _has_given_introduction(turns):
        return False
    recent = last_n_joined(turns, 10)
    has_name = "name" in recent or any(m in recent for m in _NAME_MARKERS)
    has_source = any(m in recent for m in _CONTACT_MARKERS)
    return has_name and has_source


def build_director_nudge(context: str) -> str | None:
    """Pick the director note for the current transcript, if any."""
    turns = parse_turns(context)

    if is_first_message(turns):
        return (
            "This is the user's first message. Respond naturally like a normal "
            'human text: "Hey this is Jay, who am I speaking with?" Keep it short.'
        )

    if _should_nudge_intro(turns):
        return (
            "You now have their name and where they got your number. Give a brief "
            "introduction about yourself - your credentials, that you've trained "
            "elite athletes and regular people. Keep it brief, then transition to "
            "asking about their fitness goals."
        )

    return None


def build_prompt(transcript: str, user_context: str | None = None) -> PromptParts:
    """Build the V1 request. V1 does not use stored user context."""
    context = (transcript or "").strip()
    instructions = with_director_note(SYSTEM_PROMPT, build_director_nudge(context))
    return PromptParts(instructions=instructions, input=reply_input(context, "Jay"))
