"""
Pagination -- opaque keyset cursors.

A cursor encodes the sort key of the last row a caller has seen:
``base64url("<journal_date ISO>|<transaction seq>")``.  Continuing from a
cursor filters strictly past that key, so rows appended concurrently never
shift or duplicate earlier pages.
"""

import base64
import binascii
from dataclasses import dataclass
from datetime import date

from ledger_kernel.exceptions import InvalidCursorError

_SEPARATOR = "|"


@dataclass(frozen=True)
class PageCursor:
    """Sort key of the last row on a page."""

    journal_date: date
    seq: int

    def encode(self) -> str:
        raw = f"{self.journal_date.isoformat()}{_SEPARATOR}{self.seq}"
        return base64.urlsafe_b64encode(raw.encode("ascii")).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> "PageCursor":
        try:
            raw = base64.urlsafe_b64decode(token.encode("ascii")).decode("ascii")
            date_part, seq_part = raw.split(_SEPARATOR)
            return cls(journal_date=date.fromisoformat(date_part), seq=int(seq_part))
        except (binascii.Error, UnicodeError, ValueError, AttributeError) as exc:
            raise InvalidCursorError(str(token)) from exc
