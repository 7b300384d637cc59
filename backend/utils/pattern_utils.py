from typing import Callable, List

WILDCARD = "*"


def has_wildcard(pattern: str) -> bool:
    return WILDCARD in (pattern or "")


def _glob_match(pattern: str, value: str) -> bool:
    """Full-string match where ``*`` stands for any run of characters.

    Greedy two-pointer walk with backtracking to the most recent star; every
    other pattern character must match literally.
    """
    p = v = 0
    star = -1
    resume = 0
    plen, vlen = len(pattern), len(value)

    while v < vlen:
        if p < plen and pattern[p] == WILDCARD:
            star = p
            resume = v
            p += 1
        elif p < plen and pattern[p] == value[v]:
            p += 1
            v += 1
        elif star != -1:
            # Let the last star swallow one more character and retry
            p = star + 1
            resume += 1
            v = resume
        else:
            return False

    while p < plen and pattern[p] == WILDCARD:
        p += 1
    return p == plen


def matches(pattern: str, value: str) -> bool:
    """Return True if ``value`` matches the filter ``pattern``.

    Without a ``*`` the pattern must equal the value exactly (case-sensitive,
    no trimming). With one or more ``*`` the whole value must match, each
    ``*`` covering zero or more characters:

        matches("jenkins*", "jenkins46")    -> True
        matches("jenkins*", "jenkins")      -> True
        matches("jenkins*", "xjenkins46")   -> False
        matches("jenkins*46", "jenkins-test-46") -> True
    """
    pattern = "" if pattern is None else str(pattern)
    value = "" if value is None else str(value)
    if not has_wildcard(pattern):
        return pattern == value
    return _glob_match(pattern, value)


def compile_pattern(pattern: str) -> Callable[[str], bool]:
    """Compile a filter pattern into a predicate over cell values."""
    pattern = "" if pattern is None else str(pattern)
    if not has_wildcard(pattern):
        return lambda value: value == pattern

    # Collapse runs of stars; "a**b" behaves exactly like "a*b"
    parts: List[str] = []
    for ch in pattern:
        if ch == WILDCARD and parts and parts[-1] == WILDCARD:
            continue
        parts.append(ch)
    collapsed = "".join(parts)

    if collapsed == WILDCARD:
        return lambda value: True
    return lambda value: _glob_match(collapsed, "" if value is None else str(value))
