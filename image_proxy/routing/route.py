# image_proxy/routing/route.py

"""
Routes bind a request path pattern to a source and a processor profile.
The registry picks the first route, in configuration order, whose pattern matches.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List

from image_proxy.config import RouteConfig
from image_proxy.errors import NoRouteMatched


@dataclass(frozen=True)
class RouteBinding:
    """An immutable, compiled route. Shared read-only by concurrent requests."""
    name: str
    pattern: re.Pattern
    image_key_group: str
    source: str
    processor: str
    cache_control: str = ""

    @classmethod
    def from_config(cls, config: RouteConfig) -> "RouteBinding":
        return cls(
            name=config.name,
            pattern=re.compile(config.pattern),
            image_key_group=config.image_key_group,
            source=config.source,
            processor=config.processor,
            cache_control=config.cache_control,
        )

    def matches(self, path: str) -> bool:
        return self.pattern.search(path) is not None

    def captures(self, path: str) -> Dict[str, str]:
        """
        Named groups of the first match. Unnamed groups are ignored, and so are
        optional named groups that did not take part in the match.
        """
        match = self.pattern.search(path)
        if match is None:
            return {}
        return {name: value for name, value in match.groupdict().items() if value is not None}


class RouteRegistry:
    """Ordered collection of routes with first-match lookup."""

    def __init__(self, routes: Iterable[RouteBinding]):
        self.routes: List[RouteBinding] = list(routes)

    @classmethod
    def from_configs(cls, configs: Iterable[RouteConfig]) -> "RouteRegistry":
        return cls(RouteBinding.from_config(config) for config in configs)

    def match(self, path: str) -> RouteBinding:
        # First match wins, not best match; operators order overlapping patterns.
        for route in self.routes:
            if route.matches(path):
                return route
        raise NoRouteMatched(path)

    def __len__(self) -> int:
        return len(self.routes)
