"""
Attribution confidence wrappers.

Some attributions (window function names recovered from alias text, node
line ranges found by keyword search) are heuristic. They are wrapped in
``Resolved`` or ``Guessed`` so consumers can tell confident answers from
best-effort ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Resolved:
    """A value read directly from the AST.

    Example:
        >>> Resolved("ROW_NUMBER").is_guess
        False
    """

    value: Any

    @property
    def is_guess(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "resolution": "resolved"}


@dataclass(frozen=True)
class Guessed:
    """A value recovered by a heuristic; may be wrong.

    Example:
        >>> Guessed("LAG").is_guess
        True
    """

    value: Any

    @property
    def is_guess(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "resolution": "guessed"}


NameResolution = Union[Resolved, Guessed]
