"""In-flight flash-swap sessions.

Each initiated flash swap opens a session naming the one pair allowed to
call back for it. Sessions nest: an execute hook may start another flash
swap, whose session sits on top until its swap returns.
"""

from __future__ import annotations

from dataclasses import dataclass

from pairswap.constants import ZERO
from pairswap.flashswap.codec import SwapType


@dataclass(frozen=True)
class FlashSession:
    """Authorization record for one in-flight flash swap."""

    session_id: int
    strategy: SwapType
    pair: str


class SessionStack:
    """Stack of in-flight sessions with monotonically increasing ids."""

    def __init__(self) -> None:
        self._sessions: list[FlashSession] = []
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, strategy: SwapType, pair: str) -> FlashSession:
        session = FlashSession(session_id=self._next_id, strategy=strategy, pair=pair)
        self._next_id += 1
        self._sessions.append(session)
        return session

    def close(self, session: FlashSession) -> None:
        """Pop ``session``, which must be the innermost one.

        Raises:
            RuntimeError: If sessions are closed out of order
        """
        if not self._sessions or self._sessions[-1] != session:
            raise RuntimeError(f"Session {session.session_id} is not the innermost session")
        self._sessions.pop()

    @property
    def innermost(self) -> FlashSession | None:
        return self._sessions[-1] if self._sessions else None

    @property
    def pairs(self) -> frozenset[str]:
        """Pairs currently allowed to call back."""
        return frozenset(s.pair for s in self._sessions)

    def find(self, session_id: int) -> FlashSession | None:
        for session in reversed(self._sessions):
            if session.session_id == session_id:
                return session
        return None

    @property
    def permissioned_pair(self) -> str:
        """Pair of the innermost session, or the zero address when idle."""
        innermost = self.innermost
        return innermost.pair if innermost else ZERO
