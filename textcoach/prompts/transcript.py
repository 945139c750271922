"""Transcript rendering and parsing shared by the prompt modules.

The reply path and context extraction both render conversation history
as one line per turn, ``USER: ...`` for inbound messages and
``<LABEL>: ...`` for the coach. Prompt modules parse that text back into
turns to decide on director nudges.
"""

import re
from dataclasses import dataclass
from typing import Literal

Direction = Literal["inbound", "outbound"]
Speaker = Literal["user", "coach", "other"]

_USER_PREFIX = re.compile(r"^user\s*:", re.IGNORECASE)
# Canonical coach labels plus aliases kept for older transcripts
_COACH_PREFIX = re.compile(r"^(slash|jay|assistant|coach)\s*:", re.IGNORECASE)


@dataclass(frozen=True)
class TranscriptTurn:
    """One message in a conversation timeline."""

    direction: Direction
    body: str
    timestamp: str


@dataclass(frozen=True)
class ParsedTurn:
    """One line of a rendered transcript, attributed to a speaker."""

    speaker: Speaker
    text: str


def render_transcript(turns: list[TranscriptTurn], assistant_label: str) -> str:
    """Render turns as ``USER: ...`` / ``<LABEL>: ...`` lines.

    Args:
        turns: Timeline in chronological order.
        assistant_label: Label for outbound turns (e.g. "SLASH").

    Returns:
        Newline-joined transcript, empty string for no turns.
    """
    lines = []
    for turn in turns:
        who = "USER" if turn.direction == "inbound" else assistant_label
        lines.append(f"{who}: {turn.body}")
    return "\n".join(lines)


def parse_turns(context: str) -> list[ParsedTurn]:
    """Parse a rendered transcript back into speaker-attributed turns.

    Blank lines are skipped; lines without a known label are kept as
    speaker "other".
    """
    turns: list[ParsedTurn] = []
    for raw in (context or "").split("\n"):
        line = raw.strip()
        if not line:
            continue
        if _USER_PREFIX.match(line):
            turns.append(ParsedTurn("user", _USER_PREFIX.sub("", line, count=1).strip()))
            continue
        if _COACH_PREFIX.match(line):
            turns.append(ParsedTurn("coach", _COACH_PREFIX.sub("", line, count=1).strip()))
            continue
        turns.append(ParsedTurn("other", line))
    return turns


def last_n_joined(turns: list[ParsedTurn], n: int) -> str:
    """Lowercased text of the last n turns joined by spaces."""
    return " ".join(t.text for t in turns[-n:]).lower()


def is_first_message(turns: list[ParsedTurn]) -> bool:
    """True when the user has sent exactly one message and the coach none."""
    user_count = sum(1 for t in turns if t.speaker == "user")
    coach_count = sum(1 for t in turns if t.speaker == "coach")
    return user_count == 1 and coach_count == 0
