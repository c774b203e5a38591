"""Line-level reading and rewriting of KEY=VALUE configuration files.

Files are handled as ordered lists of lines so that comments, blank lines and
untouched assignments survive a rewrite verbatim; reading values for use goes
through python-dotenv instead (see ``envseal.config.loader``). Writes go to a temporary
file in the same directory and are moved into place with ``os.replace``.
"""
from __future__ import annotations

import fcntl
import logging
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from envseal.core.exceptions import EnvFileNotFoundError

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$", re.IGNORECASE)
LOCK_SUFFIX = ".lock"
EXPORT_PREFIX = "export "


def split_lines(content: str) -> List[str]:
    # handles both \r\n and \n
    if not content:
        return []
    return re.split(r"\r?\n", content)


def join_lines(lines: List[str]) -> str:
    return "\n".join(lines)


def parse_line(line: str, line_number: Optional[int] = None) -> Optional[Tuple[str, str]]:
    """
    Return (key, value) for an assignment line, or None for comments, blanks,
    lines without '=' and lines whose key is not a valid variable name.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None

    if stripped.startswith(EXPORT_PREFIX):
        stripped = stripped[len(EXPORT_PREFIX):].lstrip()
    key, _, value = stripped.partition("=")
    key = key.strip()
    if not key or not KEY_PATTERN.match(key):
        where = f" at line {line_number}" if line_number else ""
        logger.warning("Invalid environment variable key format: %r%s", key, where)
        return None
    return key, value


def unquote(value: str) -> str:
    """
    Reduce a raw assignment value to what a dotenv reader would return:
    the contents of a quoted value, or an unquoted value without its
    trailing `` # comment``.
    """
    value = value.strip()
    if len(value) >= 2 and value[0] in "'\"":
        closing = value.find(value[0], 1)
        if closing != -1:
            return value[1:closing]
    match = re.search(r"\s+#", value)
    if match:
        value = value[:match.start()]
    return value.strip()


def collect_assignments(lines: List[str]) -> Dict[str, List[str]]:
    """Every value assigned to each key, in file order."""
    assignments: Dict[str, List[str]] = {}
    for number, line in enumerate(lines, start=1):
        parsed = parse_line(line, number)
        if parsed is None:
            continue
        key, value = parsed
        if key in assignments:
            logger.warning("Duplicate environment variable '%s' found at line %d", key, number)
        assignments.setdefault(key, []).append(value)
    return assignments


def extract_variables(lines: List[str]) -> Dict[str, str]:
    """Collect all assignments; for duplicate keys the last one wins."""
    return {key: values[-1] for key, values in collect_assignments(lines).items()}


def update_lines(lines: List[str], updates: Mapping[str, str]) -> List[str]:
    """
    Replace the value of every assignment to a key in ``updates``; keys that
    do not appear yet are appended at the end. An ``export`` prefix is kept.
    """
    seen = set()
    result = []
    for line in lines:
        parsed = parse_line(line)
        if parsed is not None and parsed[0] in updates:
            key = parsed[0]
            seen.add(key)
            prefix = EXPORT_PREFIX if line.lstrip().startswith(EXPORT_PREFIX) else ""
            result.append(f"{prefix}{key}={updates[key]}")
        else:
            result.append(line)

    for key, value in updates.items():
        if key not in seen:
            logger.debug("Added new environment variable: %s", key)
            result.append(f"{key}={value}")
    return result


def read_lines(path: Path | str) -> List[str]:
    p = Path(path)
    if not p.is_file():
        raise EnvFileNotFoundError(f"Environment file not found: {p}")
    content = p.read_text(encoding="utf-8")
    if not content:
        logger.warning("Environment file is empty: %s", p)
    return split_lines(content)


def write_lines(path: Path | str, lines: List[str]) -> None:
    """Atomically replace ``path`` with ``lines`` joined by newlines."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=p.parent, prefix=f".{p.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(join_lines(lines))
            f.flush()
            os.fsync(f.fileno())
        if p.exists():
            os.chmod(tmp_path, p.stat().st_mode & 0o777)
        os.replace(tmp_path, p)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.debug("Wrote %d lines to %s", len(lines), p)


@contextmanager
def locked(path: Path | str) -> Iterator[Path]:
    """
    Hold an exclusive advisory lock on ``<path>.lock`` for the duration of
    the block. The lock is released on every exit path.
    """
    p = Path(path)
    lock_path = p.with_name(p.name + LOCK_SUFFIX)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        try:
            yield p
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
