"""
Tree Aggregator

Collapses a batch of changed folder-relative paths into the smallest set of
scan targets that still covers every change:

- a directory collecting at least ``threshold`` changes is scanned as a whole
  instead of listing its files;
- file changes also count towards every enclosing directory already seen in
  the batch, so bursts spread over sibling subdirectories roll up to their
  common parent;
- a directory (or deleted path) observed directly is always reported, since
  the shape of what it contained is unknown;
- once a directory is reported, nothing below it is.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from infra.logger import get_logger
from syncwatch.core.classifier import PathClassifier, PathKind, StatPathClassifier
from syncwatch.core.errors import AggregationError
from syncwatch.core.paths import (
    ROOT,
    is_strict_descendant,
    normalize_path,
    parent_path,
    path_components,
    strict_ancestors,
)


@dataclass
class Leaf:
    """A changed file, reported on its own unless a parent covers it."""
    path: str


@dataclass
class Directory:
    """An aggregation candidate with its accumulated change weight."""
    path: str
    score: int = 0


Entry = Union[Leaf, Directory]


class TreeAggregator:
    """Aggregates batches for one folder root."""

    def __init__(
        self,
        root: Path,
        threshold: int,
        classifier: Optional[PathClassifier] = None,
    ):
        if threshold < 1:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self.root = Path(root)
        self.threshold = threshold
        self.classifier = classifier or StatPathClassifier()
        self.log = get_logger("syncwatch.aggregator")

    def aggregate(self, paths: Iterable[str]) -> List[str]:
        batch = sorted({normalize_path(p) for p in paths}, key=path_components)
        if not batch:
            raise AggregationError("No changes to aggregate")

        entries = self._score(batch)
        targets = self._select(entries)
        self.log.debug("aggregator.done", changes=len(batch), targets=len(targets))
        return targets

    def _score(self, batch: List[str]) -> Dict[str, Entry]:
        entries: Dict[str, Entry] = {}

        for path in batch:
            kind = self.classifier.classify(self.root / path)

            if kind is PathKind.FILE:
                anchor = parent_path(path)
                entries[path] = Leaf(path)
                parent = entries.get(anchor)
                if isinstance(parent, Directory):
                    parent.score += 1
                else:
                    entries[anchor] = Directory(anchor, 1)
            else:
                # directories and vanished paths are always reported
                anchor = path
                existing = entries.get(path)
                score = self.threshold
                if isinstance(existing, Directory):
                    score = max(score, existing.score)
                entries[path] = Directory(path, score)

            for ancestor in strict_ancestors(anchor):
                entry = entries.get(ancestor)
                if isinstance(entry, Directory):
                    entry.score += 1

        return entries

    def _select(self, entries: Dict[str, Entry]) -> List[str]:
        targets: List[str] = []
        covered: Optional[str] = None

        for key in sorted(entries, key=path_components):
            if covered is not None and is_strict_descendant(key, covered):
                continue
            entry = entries[key]
            if isinstance(entry, Directory):
                if entry.score < self.threshold:
                    continue
                covered = key
            targets.append(key)
            if key == ROOT:
                break

        return targets
