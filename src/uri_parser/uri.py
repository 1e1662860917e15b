"""Parsed URI values and their canonical rendering.

A URI renders as::

    scheme ":" ["//" [name [":" password] "@"] host [":" port]] [path]
           ["?" key "=" value *("&" key "=" value)] ["#" fragment]

Query pairs are written in the mapping's iteration order, which is not
necessarily the order they appeared in the parsed text.  Rendering then
re-parsing gives an equal URI, not necessarily identical text.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class User:
    name: str
    password: str | None = None

    def __str__(self) -> str:
        if self.password is None:
            return self.name
        return f"{self.name}:{self.password}"


class FrozenQuery(dict):
    """A dict of query pairs that refuses modification.

    Copying, pickling and ``dataclasses.asdict`` rebuild it from its items.
    """

    def _readonly(self, *args, **kwargs):
        raise TypeError(f"{type(self).__name__} is read-only")

    __setitem__ = __delitem__ = __ior__ = _readonly
    clear = pop = popitem = setdefault = update = _readonly

    def __reduce__(self):
        return type(self), (dict(self),)


@dataclass(frozen=True)
class URI:
    """An immutable parsed URI.

    ``source`` is the buffer the URI was parsed from (``bytearray`` and
    ``memoryview`` input is kept as ``bytes``); every text field is a span of
    it.  It does not take part in equality.
    """

    scheme: str
    user: User | None = None
    host: str | None = None
    port: int | None = None
    path: str | None = None
    query: Mapping[str, str] | None = field(default=None, hash=False)
    fragment: str | None = None
    source: str | bytes | None = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.query is not None and not isinstance(self.query, FrozenQuery):
            object.__setattr__(self, "query", FrozenQuery(self.query))

    @property
    def authority(self) -> str | None:
        """``name[:password]@host[:port]``, or None without user and host."""
        if self.user is None and self.host is None:
            return None
        parts = []
        if self.user is not None:
            parts.append(f"{self.user}@")
        if self.host is not None:
            parts.append(self.host)
        if self.port is not None:
            parts.append(f":{self.port}")
        return "".join(parts)

    def render(self) -> str:
        parts = [f"{self.scheme}:"]
        authority = self.authority
        if authority is not None:
            parts.append(f"//{authority}")
        if self.path is not None:
            parts.append(self.path)
        if self.query is not None:
            parts.append("?" + "&".join(f"{k}={v}" for k, v in self.query.items()))
        if self.fragment is not None:
            parts.append(f"#{self.fragment}")
        return "".join(parts)

    def __str__(self) -> str:
        return self.render()
