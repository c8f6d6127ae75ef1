"""
Target pattern expansion.

A target specification may be an exact triple, the keyword ``all``, a glob
(``*``, ``?``, ``[...]``, ``[!...]`` and ``{a,b}`` alternation) or a regular
expression prefixed with ``~``. Glob matching is whole-name: ``*-linux-musl``
does not match ``x86_64-unknown-linux-musleabi``.
"""

import fnmatch
import logging
import re
from typing import Iterable, List, Optional

from crosskit.core.exceptions import InvalidTargetTripleError, NoMatchingTargetsError
from crosskit.cross.targets import TARGETS, TargetRegistry

logger = logging.getLogger(__name__)

GLOB_CHARS = frozenset("*?[{")


def _split_alternatives(body: str) -> List[str]:
    """Split brace contents on top-level commas."""
    parts = []
    depth = 0
    current = []
    for char in body:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def expand_braces(pattern: str) -> List[str]:
    """
    Expand ``{a,b}`` alternations into separate glob patterns.

    Nested braces are supported. An unbalanced ``{`` is kept literally.

    Example:
        >>> expand_braces("{x86_64,aarch64}-*-linux-musl")
        ['x86_64-*-linux-musl', 'aarch64-*-linux-musl']
    """
    start = pattern.find("{")
    if start < 0:
        return [pattern]

    depth = 0
    for index in range(start, len(pattern)):
        if pattern[index] == "{":
            depth += 1
        elif pattern[index] == "}":
            depth -= 1
            if depth == 0:
                end = index
                break
    else:
        return [pattern]

    prefix = pattern[:start]
    body = pattern[start + 1 : end]
    suffix = pattern[end + 1 :]

    expanded = []
    for alternative in _split_alternatives(body):
        for tail in expand_braces(alternative + suffix):
            expanded.append(prefix + tail)
    return expanded


def glob_match(pattern: str, name: str) -> bool:
    """
    Match a whole name against a glob pattern.

    Args:
        pattern: Glob pattern, braces allowed
        name: Candidate name

    Returns:
        True if the entire name matches

    Example:
        >>> glob_match("x86_64-apple-darwin*-clang", "x86_64-apple-darwin23-clang")
        True
        >>> glob_match("x86_64-apple-darwin*-clang", "x86_64-apple-darwin23-clang++")
        False
    """
    return any(fnmatch.fnmatchcase(name, p) for p in expand_braces(pattern))


def is_glob(pattern: str) -> bool:
    """Check whether a pattern uses glob syntax."""
    return any(char in GLOB_CHARS for char in pattern)


def expand(pattern: str, registry: TargetRegistry = TARGETS) -> List[str]:
    """
    Expand a single target pattern into a sorted list of known triples.

    Args:
        pattern: Exact triple, 'all', glob, or '~'-prefixed regex
        registry: Target registry to match against

    Returns:
        Sorted list of matching triples; empty when nothing matches or the
        regex is invalid
    """
    pattern = pattern.strip()
    if not pattern:
        return []

    if pattern == "all":
        return registry.triples()

    if pattern.startswith("~"):
        try:
            regex = re.compile(pattern[1:])
        except re.error as e:
            logger.warning(f"Invalid target regex '{pattern[1:]}': {e}")
            return []
        return [t for t in registry.triples() if regex.search(t)]

    if is_glob(pattern):
        return [t for t in registry.triples() if glob_match(pattern, t)]

    return [pattern] if pattern in registry else []


def validate_triple(triple: str) -> str:
    """
    Check that a custom triple only uses lowercase letters, digits, '-' and '_'.

    Raises:
        InvalidTargetTripleError: If the triple holds any other character
    """
    for char in triple:
        if not (char.isascii() and (char.islower() or char.isdigit() or char in "-_")):
            raise InvalidTargetTripleError(triple)
    return triple


def split_target_list(value: str) -> List[str]:
    """Split a comma or newline separated target list into patterns."""
    return [part.strip() for part in re.split(r"[,\n]", value) if part.strip()]


def expand_patterns(
    specs: Iterable[str],
    registry: TargetRegistry = TARGETS,
    allow_custom: bool = False,
) -> List[str]:
    """
    Expand several target specifications into one de-duplicated list.

    Each spec may itself hold comma or newline separated patterns. Groups
    keep first-seen order; each glob or regex group is sorted internally.

    Args:
        specs: Target specifications
        registry: Target registry to match against
        allow_custom: Keep unmatched literal triples as custom targets

    Returns:
        Ordered list of unique triples

    Raises:
        NoMatchingTargetsError: If the specs expand to nothing
    """
    result: List[str] = []
    seen = set()
    last_pattern: Optional[str] = None

    for spec in specs:
        for pattern in split_target_list(spec):
            last_pattern = pattern
            matches = expand(pattern, registry)
            if not matches:
                if allow_custom and not is_glob(pattern) and not pattern.startswith("~"):
                    logger.warning(f"Unknown target '{pattern}', using it as given")
                    matches = [validate_triple(pattern)]
                else:
                    raise NoMatchingTargetsError(pattern)
            for triple in matches:
                if triple not in seen:
                    seen.add(triple)
                    result.append(triple)

    if not result:
        raise NoMatchingTargetsError(last_pattern or "")

    return result


__all__ = [
    "expand",
    "expand_braces",
    "expand_patterns",
    "glob_match",
    "is_glob",
    "split_target_list",
    "validate_triple",
]
