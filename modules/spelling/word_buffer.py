"""
Growing buffer of confirmed letters.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class WordBuffer:
    """Ordered confirmed letters with last-letter duplicate suppression.

    A letter equal to the current ending of the buffer is not appended
    again; anything else is.  No length limit, nothing is persisted.
    """

    def __init__(self, initial: str = ""):
        self._text = initial

    def append(self, letter: Optional[str]) -> bool:
        """Append a confirmed letter.

        Returns:
            True if the buffer changed
        """
        if not letter:
            return False
        if self._text.endswith(letter):
            logger.debug("Suppressed repeated '%s'", letter)
            return False
        self._text += letter
        return True

    def clear(self):
        self._text = ""

    def current(self) -> str:
        return self._text

    @property
    def last(self) -> Optional[str]:
        return self._text[-1] if self._text else None

    @property
    def is_empty(self) -> bool:
        return not self._text

    def __len__(self):
        return len(self._text)

    def __str__(self):
        return self._text

    def __repr__(self):
        return f"WordBuffer({self._text!r})"
