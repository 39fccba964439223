"""Branch pattern matching.

A branch pattern is either a literal branch name or a glob in which ``*``
matches any substring (including ``/`` and the empty string). Matching is
anchored at both ends. Every other character, including regex
metacharacters such as ``.`` and ``+``, is literal.

Examples:
    >>> BranchPattern("release/*").matches("release/2.0.0")
    True
    >>> BranchPattern("release/1.0").matches("release/1x0")
    False
"""

from __future__ import annotations

from dataclasses import dataclass, field

WILDCARD = "*"


@dataclass(frozen=True)
class BranchPattern:
    """Compiled branch pattern.

    Attributes:
        pattern: The source pattern text.
        segments: Literal segments between wildcards.
    """

    pattern: str
    segments: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.pattern:
            raise ValueError("Branch pattern must be non-empty")
        object.__setattr__(self, "segments", tuple(self.pattern.split(WILDCARD)))

    @property
    def is_glob(self) -> bool:
        return len(self.segments) > 1

    def matches(self, name: str) -> bool:
        """Return True if ``name`` matches the whole pattern."""
        if not self.is_glob:
            return name == self.pattern

        head, *middle, tail = self.segments
        if len(name) < len(head) + len(tail):
            return False
        if not (name.startswith(head) and name.endswith(tail)):
            return False

        # Leftmost placement of each middle segment is sufficient for '*'-only globs.
        position = len(head)
        end = len(name) - len(tail)
        for segment in middle:
            if not segment:
                continue
            index = name.find(segment, position, end)
            if index < 0:
                return False
            position = index + len(segment)
        return True


def compile_pattern(pattern: str) -> BranchPattern:
    """Compile a pattern string into a BranchPattern."""
    return BranchPattern(pattern)


__all__ = ["WILDCARD", "BranchPattern", "compile_pattern"]
