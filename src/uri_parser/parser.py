"""Recursive-descent parser for URIs like 'http://user:pw@host:80/path?k=v#frag'.

Every rule works on a shared cursor and returns either its value or a
``_Failure``.  Rules never raise for bad input; only ``parse_uri`` and the
public component wrappers turn a failure into one of the ``URIError``
subclasses below.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar, Union

from uri_parser.uri import URI, User


class URIError(ValueError):
    """Base class for all URI parsing failures."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(message)
        self.position = position


class MalformedError(URIError):
    """A required token, delimiter or conversion failed at ``stage``."""

    def __init__(self, message: str, position: int, stage: str) -> None:
        super().__init__(message, position)
        self.stage = stage


class IncompleteError(URIError):
    """The buffer ended while more input was still required (partial mode only)."""

    def __init__(self, message: str, position: int, stage: str) -> None:
        super().__init__(message, position)
        self.stage = stage


class NotFullyParsedError(URIError):
    """The URI parsed but left trailing input behind."""

    def __init__(self, message: str, position: int, remainder: str | bytes) -> None:
        super().__init__(message, position)
        self.remainder = remainder


# Stop-sets: a token is a maximal non-empty run of characters outside its set.
GENERAL_STOP = ":/?#[]@"
PATH_STOP = ":?#[]"
QUERY_STOP = "&=:#[]"
FRAGMENT_STOP = ":#[]"

_DIGITS = "0123456789"
_MAX_PORT = 65535

Input = Union[str, bytes, bytearray, memoryview]
T = TypeVar("T")


@dataclass(frozen=True)
class _Failure:
    stage: str
    position: int
    message: str
    incomplete: bool = False


class _Cursor:
    """Position into a str or bytes buffer.

    Scanning happens in the buffer's own type; only matched spans are
    validated (and, for bytes, decoded) as UTF-8 text.
    """

    def __init__(self, data: Input, partial: bool = False) -> None:
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        if not isinstance(data, (str, bytes)):
            raise TypeError(f"Expected str or bytes, got {type(data).__name__}")
        self._data = data
        self._binary = isinstance(data, bytes)
        self.partial = partial
        self.pos = 0

    def _lit(self, chars: str) -> str | bytes:
        return chars.encode("ascii") if self._binary else chars

    @property
    def buffer(self) -> str | bytes:
        return self._data

    def at_end(self) -> bool:
        return self.pos >= len(self._data)

    def remaining(self) -> str | bytes:
        return self._data[self.pos :]

    def startswith(self, literal: str) -> bool:
        return self._data.startswith(self._lit(literal), self.pos)

    def accept(self, literal: str) -> bool:
        """Consume ``literal`` if the input continues with it."""
        if not self.startswith(literal):
            return False
        self.pos += len(literal)
        return True

    def got(self) -> str:
        nxt = self._data[self.pos : self.pos + 4]
        if not nxt:
            return "end of input"
        if self._binary:
            nxt = nxt.decode("utf-8", "replace")
        return repr(nxt[0])

    def scan_until(self, stop: str) -> int:
        """Return the end of the run starting at ``pos`` that avoids ``stop``."""
        data, stop_chars, end = self._data, self._lit(stop), len(self._data)
        pos = self.pos
        while pos < end and data[pos : pos + 1] not in stop_chars:
            pos += 1
        return pos

    def scan_while(self, allowed: str) -> int:
        data, allowed_chars, end = self._data, self._lit(allowed), len(self._data)
        pos = self.pos
        while pos < end and data[pos : pos + 1] in allowed_chars:
            pos += 1
        return pos

    def find(self, literal: str) -> int:
        return self._data.find(self._lit(literal), self.pos)

    def take(self, end: int, stage: str) -> str | _Failure:
        """Consume ``[pos, end)`` as UTF-8 text."""
        span = self._data[self.pos : end]
        try:
            if self._binary:
                text = span.decode("utf-8")
            else:
                span.encode("utf-8")
                text = span
        except UnicodeError as e:
            # A multi-byte sequence cut off by the end of the buffer is truncation.
            truncated = isinstance(e, UnicodeDecodeError) and e.reason == "unexpected end of data"
            return self.fail(
                stage,
                f"Invalid UTF-8 in {stage}: {e.reason}",
                position=self.pos + e.start,
                exhausted=truncated and end == len(self._data),
            )
        self.pos = end
        return text

    def read_token(self, stop: str, stage: str) -> str | _Failure:
        end = self.scan_until(stop)
        if end == self.pos:
            return self.fail(stage, f"Expected {stage}, got {self.got()}")
        return self.take(end, stage)

    def fail(
        self,
        stage: str,
        message: str,
        position: int | None = None,
        exhausted: bool | None = None,
    ) -> _Failure:
        if position is None:
            position = self.pos
        if exhausted is None:
            exhausted = position >= len(self._data)
        return _Failure(stage, position, message, incomplete=self.partial and exhausted)

    def error(self, failure: _Failure) -> URIError:
        """Build the exception for ``failure`` with a caret under its position."""
        message = self.describe(failure.position, failure.message)
        if failure.incomplete:
            return IncompleteError(message, failure.position, failure.stage)
        return MalformedError(message, failure.position, failure.stage)

    def describe(self, position: int, message: str) -> str:
        shown, column = self._data, position
        if self._binary:
            # position is a byte offset; the caret goes under the decoded character
            shown = self._data.decode("utf-8", "replace")
            column = len(self._data[:position].decode("utf-8", "replace"))
        pointer = " " * column + "^"
        return f"  {shown}\n  {pointer}\n{message}"


# -- component rules ----------------------------------------------------------


def _scheme(cur: _Cursor) -> str | _Failure:
    """Everything up to (not including) the first ':'."""
    colon = cur.find(":")
    if colon < 0:
        return cur.fail(
            "scheme",
            "Expected ':' after scheme, got end of input",
            position=cur.scan_until(":"),
        )
    if colon == cur.pos:
        return cur.fail("scheme", "Expected scheme before ':'")
    return cur.take(colon, "scheme")


def _user(cur: _Cursor) -> User | _Failure:
    """``name[:password]@``; restores the cursor when it does not match."""
    start = cur.pos
    name = cur.read_token(GENERAL_STOP, "user")
    if isinstance(name, _Failure):
        cur.pos = start
        return name

    password = None
    if cur.accept(":"):
        password = cur.read_token(GENERAL_STOP, "user")
        if isinstance(password, _Failure):
            cur.pos = start
            return password

    if not cur.accept("@"):
        failure = cur.fail("user", f"Expected '@', got {cur.got()}")
        cur.pos = start
        return failure
    return User(name=name, password=password)


def _port(cur: _Cursor) -> int | _Failure:
    end = cur.scan_while(_DIGITS)
    if end == cur.pos:
        return cur.fail("port", f"Expected port number, got {cur.got()}")
    digits = cur.take(end, "port")
    if isinstance(digits, _Failure):
        return digits
    port = int(digits, 10)
    if port > _MAX_PORT:
        return cur.fail("port", f"Port {digits} is out of range 0-{_MAX_PORT}", position=end - len(digits))
    return port


def _authority(cur: _Cursor) -> tuple[User | None, str, int | None] | _Failure:
    """``//[user@]host[:port]``."""
    if not cur.accept("//"):
        return cur.fail("host", f"Expected '//', got {cur.got()}")

    user = _user(cur)
    if isinstance(user, _Failure):
        user = None

    host = cur.read_token(GENERAL_STOP, "host")
    if isinstance(host, _Failure):
        return host

    port = None
    if cur.accept(":"):
        port = _port(cur)
        if isinstance(port, _Failure):
            return port
    return user, host, port


def _path(cur: _Cursor) -> str | _Failure:
    # Only a leading '/' starts a path; it is part of the path text.
    if not cur.startswith("/"):
        return cur.fail("path", f"Expected '/', got {cur.got()}")
    return cur.read_token(PATH_STOP, "path")


def _query_item(cur: _Cursor) -> tuple[str, str] | _Failure:
    key = cur.read_token(QUERY_STOP, "query")
    if isinstance(key, _Failure):
        return key
    if not cur.accept("="):
        return cur.fail("query", f"Expected '=', got {cur.got()}")
    value = cur.read_token(QUERY_STOP, "query")
    if isinstance(value, _Failure):
        return value
    return key, value


def _query(cur: _Cursor) -> dict[str, str] | _Failure:
    """``?k=v[&k=v...]``; later duplicates overwrite earlier ones."""
    if not cur.accept("?"):
        return cur.fail("query", f"Expected '?', got {cur.got()}")

    pairs: dict[str, str] = {}
    while True:
        item = _query_item(cur)
        if isinstance(item, _Failure):
            return item
        key, value = item
        pairs[key] = value
        if not cur.accept("&"):
            return pairs


def _fragment(cur: _Cursor) -> str | _Failure:
    if not cur.accept("#"):
        return cur.fail("fragment", f"Expected '#', got {cur.got()}")
    return cur.read_token(FRAGMENT_STOP, "fragment")


# -- public API ----------------------------------------------------------------


def _check(cur: _Cursor, result: T | _Failure) -> T:
    if isinstance(result, _Failure):
        raise cur.error(result)
    return result


def _apply(
    rule: Callable[[_Cursor], T | _Failure], data: Input, partial: bool = False
) -> tuple[T, str | bytes]:
    cur = _Cursor(data, partial)
    value = _check(cur, rule(cur))
    return value, cur.remaining()


def parse_scheme(data: Input, *, partial: bool = False) -> tuple[str, str | bytes]:
    """Parse the scheme; the returned remainder still starts with ':'."""
    return _apply(_scheme, data, partial)


def parse_user(data: Input, *, partial: bool = False) -> tuple[User, str | bytes]:
    return _apply(_user, data, partial)


def parse_authority(
    data: Input, *, partial: bool = False
) -> tuple[tuple[User | None, str, int | None], str | bytes]:
    return _apply(_authority, data, partial)


def parse_path(data: Input, *, partial: bool = False) -> tuple[str, str | bytes]:
    return _apply(_path, data, partial)


def parse_query(data: Input, *, partial: bool = False) -> tuple[dict[str, str], str | bytes]:
    return _apply(_query, data, partial)


def parse_fragment(data: Input, *, partial: bool = False) -> tuple[str, str | bytes]:
    return _apply(_fragment, data, partial)


def parse_uri(data: Input, *, partial: bool = False) -> URI:
    """Parse ``scheme:[//[user[:password]@]host[:port]][/path][?query][#fragment]``.

    The whole input must be consumed.  With ``partial=True`` the input is
    treated as a possibly truncated buffer: running out of input where a
    token or delimiter is still required raises ``IncompleteError`` instead
    of ``MalformedError``.

    Raises MalformedError, IncompleteError or NotFullyParsedError, all
    subclasses of URIError (a ValueError).
    """
    cur = _Cursor(data, partial)

    scheme = _check(cur, _scheme(cur))
    cur.accept(":")

    user = host = port = None
    if cur.startswith("//"):
        user, host, port = _check(cur, _authority(cur))

    path = _check(cur, _path(cur)) if cur.startswith("/") else None
    query = _check(cur, _query(cur)) if cur.startswith("?") else None
    fragment = _check(cur, _fragment(cur)) if cur.startswith("#") else None

    if not cur.at_end():
        raise NotFullyParsedError(
            cur.describe(cur.pos, "Unexpected content"),
            cur.pos,
            cur.remaining(),
        )

    return URI(
        scheme=scheme,
        user=user,
        host=host,
        port=port,
        path=path,
        query=query,
        fragment=fragment,
        source=cur.buffer,
    )
