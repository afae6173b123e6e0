"""
Flag helpers for hostfault.
Turns raw `--key value` tokens into a dict or a forwardable string, and
converts flag values into the types the fault plugins need.
"""

import re
from typing import Dict, List, Sequence

from core.errors import InvalidFlagError, MissingFlagError

_DURATION_RE = re.compile(r'^(\d+h)?:?(\d+m)?:?(\d+s)?$')
_CPU_LIST_RE = re.compile(r'^(\d+(-\d+)?)(,\d+(-\d+)?)*$')


def parse_flags(tokens: Sequence[str]) -> Dict[str, str]:
    """
    Build a flag mapping from raw tokens.

    `--key value` pairs map key to value. A `--key` followed by another
    `--key` (or by nothing) maps to an empty string. Stray tokens are ignored.

    Args:
        tokens: Flag tokens, e.g. ['--path', '/tmp/a.txt', '--offset', '2']

    Returns:
        Dict of flag name (without dashes) to raw string value
    """
    flags: Dict[str, str] = {}
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.startswith('--') and len(token) > 2:
            key = token[2:]
            nxt = tokens[index + 1] if index + 1 < len(tokens) else None
            if nxt is not None and not nxt.startswith('--'):
                flags[key] = nxt
                index += 2
                continue
            flags[key] = ''
        index += 1
    return flags


def flags_to_string(tokens: Sequence[str]) -> str:
    """Join flag tokens into the string forwarded to external tools."""
    return ' '.join(tokens)


def require(flags: Dict[str, str], name: str, example: str = None) -> str:
    """Return a flag value or raise MissingFlagError."""
    value = flags.get(name)
    if value is None or value == '':
        raise MissingFlagError(name, example)
    return value


def parse_int(flags: Dict[str, str], name: str, min_val: int = None) -> int:
    """Return a required integer flag."""
    raw = require(flags, name)
    try:
        value = int(raw)
    except ValueError:
        raise InvalidFlagError(name, raw, "not an integer")
    if min_val is not None and value < min_val:
        raise InvalidFlagError(name, raw, f"must be >= {min_val}")
    return value


def parse_duration(value: str) -> int:
    """
    Convert a duration string into seconds.

    Accepts `Hh:Mm:Ss` with any part optional (`1h:30m`, `10s`, `2m:5s`).
    A bare integer is read as seconds.

    Raises:
        ValueError: Malformed input
    """
    value = value.strip()
    if value.isdigit():
        return int(value)
    if not value or not _DURATION_RE.match(value):
        raise ValueError(f"invalid duration: {value}")

    seconds = 0
    for part in value.split(':'):
        if not part:
            continue
        unit = part[-1]
        amount = int(part[:-1])
        if unit == 'h':
            seconds += amount * 3600
        elif unit == 'm':
            seconds += amount * 60
        elif unit == 's':
            seconds += amount
        else:
            raise ValueError(f"invalid time unit: {unit}")
    return seconds


def parse_cpu_list(value: str) -> List[int]:
    """
    Expand a cpu id list such as `0,2-4` into [0, 2, 3, 4].

    Raises:
        ValueError: Bad format, inverted range, or duplicate id
    """
    if not _CPU_LIST_RE.match(value):
        raise ValueError(f"cpuid param format error: {value}")

    cpu_ids: List[int] = []
    for part in value.split(','):
        if '-' in part:
            start_str, end_str = part.split('-')
            start, end = int(start_str), int(end_str)
            if start > end:
                raise ValueError(f"cpu range starting id is larger than ending id: {part}")
            ids = range(start, end + 1)
        else:
            ids = [int(part)]
        for cpu_id in ids:
            if cpu_id in cpu_ids:
                raise ValueError(f"duplicate cpu id: {cpu_id}")
            cpu_ids.append(cpu_id)
    return cpu_ids
