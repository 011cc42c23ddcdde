"""Header configuration: accumulate ``-H`` directives and apply them.

A :class:`HeaderSet` collects directives from the command line (or any other
configuration source). Each header entry remembers whether it still holds the
built-in default value or has been set explicitly, so defaults can be replaced
or skipped without ever clobbering a value the user asked for.

Applying headers onto a request is done by :func:`apply_headers`, which works
on an immutable :class:`HeaderSnapshot` and never touches the accumulator.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Callable, Mapping

from urllib3 import HTTPHeaderDict

from reqforge import __version__

logger = logging.getLogger(__name__)

# RFC 7230 token characters, used for header names and methods
TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

# Header values sent when nothing else is configured. Read-only.
DEFAULT_HEADERS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Accept": ("*/*",),
        "User-Agent": (f"reqforge/{__version__}",),
    }
)


def canonical_name(name: str) -> str:
    """Return the canonical spelling of a header name (``x-foo`` -> ``X-Foo``).

    Names which are not valid tokens are returned unchanged.
    """
    if not TOKEN_RE.match(name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class HeaderState(enum.Enum):
    DEFAULT = "default"
    EXPLICIT = "explicit"
    REMOVED = "removed"


@dataclass(frozen=True)
class HeaderEntry:
    """Values configured for one header name."""

    name: str
    values: tuple[str, ...]
    state: HeaderState


@dataclass(frozen=True)
class HeaderSnapshot:
    """Immutable view of a :class:`HeaderSet` at one point in time."""

    entries: tuple[HeaderEntry, ...] = ()
    removals: frozenset[str] = frozenset()

    def entry(self, name: str) -> HeaderEntry | None:
        key = canonical_name(name)
        for entry in self.entries:
            if canonical_name(entry.name) == key:
                return entry
        return None

    def is_removed(self, name: str) -> bool:
        return canonical_name(name) in self.removals


class HeaderSet:
    """Accumulates header directives.

    Directive syntax:
      - ``name: value`` adds ``value`` to header ``name`` (repeatable)
      - ``name`` removes header ``name`` from the final request

    The first explicit value for a header that still carries its default
    replaces the default instead of being appended to it.
    """

    def __init__(self, defaults: Mapping[str, tuple[str, ...]] = DEFAULT_HEADERS) -> None:
        self._entries: dict[str, HeaderEntry] = {}
        self._removals: set[str] = set()
        for name, values in defaults.items():
            self._entries[canonical_name(name)] = HeaderEntry(
                name=name, values=tuple(values), state=HeaderState.DEFAULT
            )

    def set_directive(self, directive: str) -> None:
        """Record one directive. Never fails."""
        name, sep, value = directive.partition(":")
        if not sep:
            logger.debug("header %r marked for removal", name)
            self._removals.add(canonical_name(name))
            return

        # strip a single leading space only
        if value.startswith(" "):
            value = value[1:]

        key = canonical_name(name)
        entry = self._entries.get(key)
        if entry is None or entry.state is HeaderState.DEFAULT:
            # keep the given spelling, the name may contain a placeholder
            self._entries[key] = HeaderEntry(
                name=name, values=(value,), state=HeaderState.EXPLICIT
            )
        else:
            self._entries[key] = replace(entry, values=entry.values + (value,))

    def state(self, name: str) -> HeaderState | None:
        key = canonical_name(name)
        if key in self._removals:
            return HeaderState.REMOVED
        entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.state

    def is_default(self, name: str) -> bool:
        """Report whether ``name`` still holds its untouched default value."""
        entry = self._entries.get(canonical_name(name))
        return entry is not None and entry.state is HeaderState.DEFAULT

    def values(self, name: str) -> tuple[str, ...]:
        entry = self._entries.get(canonical_name(name))
        return entry.values if entry is not None else ()

    @property
    def removals(self) -> frozenset[str]:
        return frozenset(self._removals)

    def snapshot(self) -> HeaderSnapshot:
        return HeaderSnapshot(
            entries=tuple(self._entries.values()),
            removals=frozenset(self._removals),
        )

    def apply(
        self, target: HTTPHeaderDict, substitute: Callable[[str], str] | None = None
    ) -> None:
        apply_headers(self.snapshot(), target, substitute)

    def __str__(self) -> str:
        return ", ".join(
            f'"{entry.name}: {",".join(entry.values)}"' for entry in self._entries.values()
        )

    def __repr__(self) -> str:
        return f"HeaderSet({self}, removals={sorted(self._removals)!r})"


def apply_headers(
    snapshot: HeaderSnapshot,
    target: HTTPHeaderDict,
    substitute: Callable[[str], str] | None = None,
) -> None:
    """Apply configured headers onto ``target`` in place.

    ``substitute`` is run over every header name and value before it is
    added. A default entry is skipped when ``target`` already has that header,
    so a request which already carries the header keeps its own value.
    Removals are processed last.
    """
    if substitute is None:
        substitute = _identity

    for entry in snapshot.entries:
        if entry.state is HeaderState.DEFAULT and entry.name in target:
            continue

        name = substitute(entry.name)
        target.discard(name)
        for value in entry.values:
            target.add(name, substitute(value))

    for name in snapshot.removals:
        target.discard(name)


def _identity(s: str) -> str:
    return s
