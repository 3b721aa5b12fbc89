"""
pulse.engine.anti_spam — Per-message spam heuristics
=====================================================

A message "looks spammy" when it is command-like, too short, an exact repeat
of the author's previous message, or sent too soon after it.  Each verdict is
computed against the author's *previous* message only; the author's state is
then overwritten with the current message whatever the verdict, so the next
message is compared against this one.

Per-author state is held in a bounded least-recently-used map.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime

from pulse.constants import (
    DEFAULT_MESSAGE_STATE_CAPACITY,
    MIN_MESSAGE_LENGTH,
    MIN_SECONDS_BETWEEN_MESSAGES,
    MOD_COMMAND_PREFIX,
    SLASH_COMMAND_PREFIX,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserMessageState:
    last_message_at: datetime
    last_message_content: str


@dataclass(frozen=True, slots=True)
class SpamVerdict:
    """Outcome of classifying one message."""

    trimmed_length: int
    seconds_since_last: float | None
    is_command: bool
    is_short: bool
    is_duplicate: bool
    too_fast: bool

    @property
    def looks_spammy(self) -> bool:
        return self.is_command or self.is_short or self.is_duplicate or self.too_fast

    @property
    def reason(self) -> str | None:
        """First matching heuristic, or ``None`` for a clean message."""
        if self.is_command:
            return "command"
        if self.is_short:
            return "too_short"
        if self.is_duplicate:
            return "duplicate"
        if self.too_fast:
            return "too_fast"
        return None


class SpamClassifier:
    """Classifies messages using each author's previous message.

    Not thread-safe; the bot drives it from a single event loop.
    """

    def __init__(
        self,
        *,
        min_length: int = MIN_MESSAGE_LENGTH,
        min_interval_seconds: float = MIN_SECONDS_BETWEEN_MESSAGES,
        command_prefixes: tuple[str, ...] = (SLASH_COMMAND_PREFIX, MOD_COMMAND_PREFIX),
        capacity: int = DEFAULT_MESSAGE_STATE_CAPACITY,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.min_length = min_length
        self.min_interval_seconds = min_interval_seconds
        self.command_prefixes = command_prefixes
        self.capacity = capacity
        self._state: OrderedDict[int, UserMessageState] = OrderedDict()

    def __len__(self) -> int:
        return len(self._state)

    def last_state(self, author_id: int) -> UserMessageState | None:
        return self._state.get(author_id)

    def classify(self, author_id: int, at: datetime, content: str) -> SpamVerdict:
        """Classify one message and record it as the author's latest."""
        trimmed = (content or "").strip()
        prior = self._state.get(author_id)

        seconds_since_last: float | None = None
        if prior is not None:
            seconds_since_last = (at - prior.last_message_at).total_seconds()

        verdict = SpamVerdict(
            trimmed_length=len(trimmed),
            seconds_since_last=seconds_since_last,
            is_command=(content or "").startswith(self.command_prefixes),
            is_short=len(trimmed) < self.min_length,
            is_duplicate=prior is not None and prior.last_message_content == trimmed,
            too_fast=(
                seconds_since_last is not None
                and seconds_since_last < self.min_interval_seconds
            ),
        )

        self._remember(author_id, UserMessageState(at, trimmed))
        return verdict

    def _remember(self, author_id: int, state: UserMessageState) -> None:
        self._state[author_id] = state
        self._state.move_to_end(author_id)
        while len(self._state) > self.capacity:
            evicted, _ = self._state.popitem(last=False)
            logger.debug("Evicted message state for author %s", evicted)
