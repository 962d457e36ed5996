from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

from bookscrapper.errors import ScrapperConfigError
from bookscrapper.records import ResourceKind


DEFAULT_RESOURCE_PRIORITY: Dict[ResourceKind, int] = {
    ResourceKind.BOOK: 7,
    ResourceKind.BOOK_REVIEW: 3,
    ResourceKind.BOOK_AUTHOR: 2,
    ResourceKind.BOOK_PUBLISHER: 2,
    ResourceKind.URL: 0,
}


@dataclass(frozen=True)
class CrawlerLink:
    path: str
    priority: int
    kind: ResourceKind = ResourceKind.URL


def _to_kind(raw: Union[str, ResourceKind]) -> ResourceKind:
    if isinstance(raw, ResourceKind):
        return raw
    try:
        return ResourceKind[str(raw).upper()]
    except KeyError as exc:
        raise ScrapperConfigError(f"Unknown resource kind in priority table: {raw!r}") from exc


def build_priority_table(
    overrides: Optional[Mapping[Union[str, ResourceKind], int]] = None,
) -> Dict[ResourceKind, int]:
    """Default table updated with overrides; rejects unknown kinds and non-int values."""
    table = dict(DEFAULT_RESOURCE_PRIORITY)

    for raw_kind, priority in (overrides or {}).items():
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ScrapperConfigError(
                f"Priority of {raw_kind!r} must be an integer, got {priority!r}"
            )
        table[_to_kind(raw_kind)] = priority

    return table


class LinkPriorityClassifier:
    """
    Maps site paths to resource kinds with an ordered list of regexes.

    The first matching pattern wins; unmatched paths are ``ResourceKind.URL``.
    Priority <= 0 means the page is crawled for links only and never analyzed.
    """

    def __init__(
        self,
        patterns: Sequence[Tuple[ResourceKind, str]],
        resource_priority: Optional[Mapping[Union[str, ResourceKind], int]] = None,
    ) -> None:
        self.resource_priority = build_priority_table(resource_priority)
        self.patterns = []

        for kind, pattern in patterns:
            try:
                self.patterns.append((_to_kind(kind), re.compile(pattern)))
            except re.error as exc:
                raise ScrapperConfigError(f"Invalid path pattern {pattern!r}: {exc}") from exc

    def classify(self, path: str) -> ResourceKind:
        for kind, pattern in self.patterns:
            if pattern.search(path):
                return kind
        return ResourceKind.URL

    def priority(self, path: str) -> int:
        return self.resource_priority.get(self.classify(path), 0)

    def link(self, path: str) -> CrawlerLink:
        kind = self.classify(path)
        return CrawlerLink(path=path, priority=self.resource_priority.get(kind, 0), kind=kind)
