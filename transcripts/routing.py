"""Map request paths onto the viewer's pages."""

# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Route(Enum):
    LANDING = "landing"
    INSTANCE = "instance"
    PLAYER = "player"
    RAW_PLAYER = "rawplayer"
    NOT_FOUND = "not_found"


# operation keyword -> (route, number of required arguments)
_OPERATIONS: dict[str, Tuple[Route, int]] = {
    "": (Route.LANDING, 0),
    "game": (Route.INSTANCE, 1),
    "player": (Route.PLAYER, 2),
    "rawplayer": (Route.RAW_PLAYER, 2),
}


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    args: Tuple[str, ...] = ()


NOT_FOUND = RouteMatch(Route.NOT_FOUND)


def _strip_base(path: str, base_path: str) -> str | None:
    """Return ``path`` relative to ``base_path`` or ``None`` if outside it."""

    base = base_path.strip("/")
    trimmed = path.strip("/")
    if not base:
        return trimmed
    if trimmed == base:
        return ""
    if trimmed.startswith(base + "/"):
        return trimmed[len(base) + 1 :]
    return None


def parse_route(path: str, base_path: str = "/") -> RouteMatch:
    """Split ``path`` into an operation keyword plus positional arguments.

    An argument counts as present only when it is non-empty after trimming
    whitespace; present arguments are returned untrimmed. Unknown operations and missing arguments yield
    :data:`NOT_FOUND`.
    """

    relative = _strip_base(path, base_path)
    if relative is None:
        return NOT_FOUND
    segments = relative.split("/") if relative else []
    operation = segments[0] if segments else ""
    entry = _OPERATIONS.get(operation)
    if entry is None:
        return NOT_FOUND
    route, required = entry
    # Trimming only decides presence; lookups get the segment as sent.
    args = tuple(segments[1 : 1 + required])
    if len(args) < required or not all(arg.strip() for arg in args):
        return NOT_FOUND
    return RouteMatch(route, args)


__all__ = ["NOT_FOUND", "Route", "RouteMatch", "parse_route"]
