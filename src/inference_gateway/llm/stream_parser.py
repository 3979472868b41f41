"""
Incremental parser for inline reasoning traces.

Some models emit a reasoning trace inline with their answer, delimited by
``<think>`` ... ``</think>``. Tokens arrive in fragments split at arbitrary
points, so a tag may straddle two or more fragments.

StreamTagParser is a two-state scanner (ANSWER, THINKING). Each call to
``feed`` looks only at the new fragment plus a short carry-over buffer that
holds a possible partial tag; already-emitted text is never re-scanned.

Guarantees:
- Every input character is emitted exactly once, in order, on exactly one
  channel (tags themselves are dropped)
- Output is independent of how the input was fragmented
- The carry-over never exceeds ``len(tag) - 1`` characters
- Malformed input never raises; an unterminated ``<think>`` simply leaves
  the parser in THINKING until the stream ends
"""

from dataclasses import dataclass
from typing import NamedTuple

from inference_gateway.models.enums import Channel


OPEN_TAG = "<think>"
CLOSE_TAG = "</think>"


class Fragment(NamedTuple):
    """A piece of output text and the channel it belongs to."""

    channel: Channel
    text: str

    @property
    def is_thinking(self) -> bool:
        return self.channel is Channel.THOUGHT


@dataclass
class StreamState:
    """The parser's only mutable state."""

    in_thinking_region: bool = False
    pending_boundary_buffer: str = ""


def partial_tag_suffix_length(text: str, tag: str) -> int:
    """
    Length of the longest strict, non-empty prefix of ``tag`` that ``text``
    ends with, or 0.

    >>> partial_tag_suffix_length("hello <thi", "<think>")
    4
    >>> partial_tag_suffix_length("hello", "<think>")
    0
    """
    for length in range(min(len(tag) - 1, len(text)), 0, -1):
        if text.endswith(tag[:length]):
            return length
    return 0


class StreamTagParser:
    """
    Split a streamed text into answer and thought channels.

    Usage:
        parser = StreamTagParser()
        for chunk in chunks:
            for fragment in parser.feed(chunk):
                ...
        for fragment in parser.flush():
            ...
    """

    def __init__(self, open_tag: str = OPEN_TAG, close_tag: str = CLOSE_TAG):
        if not open_tag or not close_tag:
            raise ValueError("Sentinel tags must be non-empty")
        self.open_tag = open_tag
        self.close_tag = close_tag
        self.state = StreamState()

    @property
    def is_thinking(self) -> bool:
        return self.state.in_thinking_region

    @property
    def max_pending(self) -> int:
        return max(len(self.open_tag), len(self.close_tag)) - 1

    def feed(self, content: str) -> list[Fragment]:
        """Consume one incoming fragment and return the output it releases."""
        fragments: list[Fragment] = []
        check_str = self.state.pending_boundary_buffer + (content or "")
        self.state.pending_boundary_buffer = ""

        while check_str:
            thinking = self.state.in_thinking_region
            tag = self.close_tag if thinking else self.open_tag
            channel = Channel.THOUGHT if thinking else Channel.ANSWER

            idx = check_str.find(tag)
            if idx != -1:
                self._emit(fragments, channel, check_str[:idx])
                self.state.in_thinking_region = not thinking
                # The remainder may hold the opposite tag; scan it in the new state
                check_str = check_str[idx + len(tag):]
                continue

            held = partial_tag_suffix_length(check_str, tag)
            cut = len(check_str) - held
            self._emit(fragments, channel, check_str[:cut])
            self.state.pending_boundary_buffer = check_str[cut:]
            break

        return fragments

    def flush(self) -> list[Fragment]:
        """
        Release any held carry-over at end of stream.

        A partial tag that never completed is ordinary text on the current
        channel.
        """
        fragments: list[Fragment] = []
        channel = Channel.THOUGHT if self.state.in_thinking_region else Channel.ANSWER
        self._emit(fragments, channel, self.state.pending_boundary_buffer)
        self.state.pending_boundary_buffer = ""
        return fragments

    def reset(self) -> None:
        self.state = StreamState()

    @staticmethod
    def _emit(fragments: list[Fragment], channel: Channel, text: str) -> None:
        if text:
            fragments.append(Fragment(channel, text))
