"""Heuristic check that a device's configuration reflects the intended one.

Devices reformat whitespace and add operational lines the generator never
produced, so exact comparison is useless. Instead only "critical" lines of the
expected text are looked for, and a single hit counts as a match. A device
that silently ignored the push is caught; a partially applied one is not.
"""
import logging

logger = logging.getLogger(__name__)

COMMENT_MARKER = "!"

CRITICAL_PREFIXES = (
    "hostname",
    "interface",
    "ip address",
    "router",
    "network",
)


def normalize_config(config: str, comment_marker: str = COMMENT_MARKER) -> list[str]:
    """Split into stripped lines, dropping blanks and comment lines."""
    normalized = []
    for line in config.splitlines():
        line = line.strip()
        if not line or line.startswith(comment_marker):
            continue
        normalized.append(line)
    return normalized


def is_critical_line(line: str) -> bool:
    return line.startswith(CRITICAL_PREFIXES)


def contains_line(lines: list[str], target: str) -> bool:
    """True if ``target`` is a substring of any line."""
    return any(target in line for line in lines)


def config_matches(current: str, expected: str) -> bool:
    """Decide whether ``current`` reflects ``expected``.

    Returns True if at least one critical line of ``expected`` is present in
    ``current``. An expected text without critical lines never matches.
    """
    current_lines = normalize_config(current)
    expected_critical = [line for line in normalize_config(expected) if is_critical_line(line)]

    found = [line for line in expected_critical if contains_line(current_lines, line)]
    logger.debug(
        f"Critical lines found: {len(found)}/{len(expected_critical)}"
    )
    return len(found) > 0
