"""
Sentence Feature
=================
The unit of input to one forward pass: the ordered token ids of a
single sentence, optionally paired with its gold label.

Token ids are produced upstream by whatever tokenizer and vocabulary
the caller uses; this module only holds them.

Usage:
    >>> feature = Feature.from_ids([4, 17, 9, 2], label=1)
    >>> len(feature)
    4
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class Feature:
    """
    Read-only token-id sequence for one sentence.

    Parameters
    ----------
    words : tuple[int, ...]
        Ordered token ids. Variable length.
    label : int or None
        Gold label index, when known. Only the evaluation helpers use it.
    """
    words: tuple[int, ...]
    label: Optional[int] = None

    @classmethod
    def from_ids(cls, ids: Iterable[int], label: Optional[int] = None) -> Feature:
        """Build a Feature from any iterable of token ids."""
        return cls(words=tuple(ids), label=label)

    def __len__(self) -> int:
        return len(self.words)
