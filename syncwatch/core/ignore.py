"""
Ignore Matcher

Decides whether a folder-relative path is noise that must never reach
Syncthing: its own bookkeeping directories (literal substrings) and the
folder's ignore patterns as served by ``/rest/db/ignores``.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from infra.logger import get_logger
from syncwatch.core.errors import IgnorePatternError

EXCLUDE_MARKER = "(?exclude)"
DEFAULT_IGNORE_PATHS = (".stversions", ".stfolder", ".stignore", ".syncthing")


@dataclass(frozen=True)
class Pattern:
    """
    One compiled ignore rule.

    ``include=True`` marks matching paths as ignorable, ``include=False`` is an
    exception that keeps a path even if an include rule matched it.
    """
    matcher: re.Pattern
    include: bool

    @classmethod
    def compile(cls, raw: str) -> "Pattern":
        expression = raw[len(EXCLUDE_MARKER):] if raw.startswith(EXCLUDE_MARKER) else raw
        try:
            matcher = re.compile(expression)
        except re.error as e:
            raise IgnorePatternError(f"Invalid ignore pattern {raw!r}: {e}") from e
        return cls(matcher=matcher, include=expression == raw)

    def matches(self, path: str) -> bool:
        return self.matcher.search(path) is not None


class IgnoreMatcher:
    """Compiled ignore rules of a single folder."""

    def __init__(
        self,
        patterns: Iterable[Pattern] = (),
        ignore_paths: Sequence[str] = DEFAULT_IGNORE_PATHS,
    ):
        self.patterns: List[Pattern] = list(patterns)
        self.ignore_paths = tuple(ignore_paths)
        self._includes = [p for p in self.patterns if p.include]
        self._excludes = [p for p in self.patterns if not p.include]
        self.log = get_logger("syncwatch.ignore")

    @classmethod
    def from_strings(
        cls,
        raw_patterns: Iterable[str],
        ignore_paths: Sequence[str] = DEFAULT_IGNORE_PATHS,
    ) -> "IgnoreMatcher":
        """Compile every pattern; a single bad one raises ``IgnorePatternError``."""
        return cls([Pattern.compile(raw) for raw in raw_patterns], ignore_paths)

    def should_ignore(self, path: str) -> bool:
        if not path:
            # the folder root itself
            return False

        for ignore_path in self.ignore_paths:
            if ignore_path in path:
                self.log.debug("ignore.path", path=path, rule=ignore_path)
                return True

        for include in self._includes:
            if not include.matches(path):
                continue
            exception = next((e for e in self._excludes if e.matches(path)), None)
            if exception is None:
                self.log.debug("ignore.pattern", path=path, rule=include.matcher.pattern)
                return True
            self.log.debug("ignore.kept", path=path, rule=exception.matcher.pattern)

        return False

    def __len__(self) -> int:
        return len(self.patterns)
