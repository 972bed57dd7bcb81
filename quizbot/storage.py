"""Process-local session registry and small persistence helpers."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterator, MutableMapping
from typing import Any, Generic, TypeVar

logger = logging.getLogger("storage")

S = TypeVar("S")


class SessionRegistry(MutableMapping[int, S], Generic[S]):
    """Identity -> session object, owned by a single coordinator.

    Starting a session for an identity that already has one replaces it.
    """

    __slots__ = ("_name", "_sessions")

    def __init__(self, name: str) -> None:
        self._name = name
        self._sessions: dict[int, S] = {}

    def __getitem__(self, key: int) -> S:
        return self._sessions[key]

    def __setitem__(self, key: int, value: S) -> None:
        self._sessions[key] = value

    def __delitem__(self, key: int) -> None:
        del self._sessions[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def start(self, key: int, session: S) -> S:
        previous = self._sessions.get(key)
        if previous is not None:
            logger.info(
                "%s: discarding active session uid=%s kind=%s",
                self._name,
                key,
                type(previous).__name__,
            )
        self._sessions[key] = session
        return session

    def finish(self, key: int) -> S | None:
        return self._sessions.pop(key, None)


async def commit_safely(session: Any) -> None:
    """Commit the session if it exposes a commit method."""

    commit = getattr(session, "commit", None)
    if commit is None:
        return
    try:
        result = commit()
    except TypeError:
        return
    if inspect.isawaitable(result):
        await result


__all__ = ["SessionRegistry", "commit_safely"]
