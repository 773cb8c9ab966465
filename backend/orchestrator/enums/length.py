"""
Fragment length classes.

Each class maps to a fixed (wait_ms, target_word_count) pair taken from
constants.FRAGMENT_LENGTH_TABLE.
"""

from __future__ import annotations

from enum import Enum

from constants import FRAGMENT_LENGTH_TABLE


class LengthClass(str, Enum):
    """
    Planned length of the next spoken fragment.

    The wait before generating a fragment grows with its length so the
    client has time to finish playing the previous clip.
    """

    VERY_LONG = "very_long"
    LONG = "long"
    MEDIUM = "medium"
    SHORT = "short"

    @property
    def wait_ms(self) -> int:
        return FRAGMENT_LENGTH_TABLE[self.value][0]

    @property
    def target_words(self) -> int:
        return FRAGMENT_LENGTH_TABLE[self.value][1]
