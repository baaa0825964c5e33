# image_proxy/proxy.py

"""
The request orchestrator: route match, option parsing, fetch, transform.
Also hosts the factories that turn a ProxyConfig into live components.
"""
import logging
from typing import Dict, Mapping, Tuple, Type

from image_proxy.config import ProxyConfig, SourceConfig
from image_proxy.errors import ConfigError
from image_proxy.processing.pipeline import ProcessedImage, TransformPipeline
from image_proxy.routing.options import resolve_options
from image_proxy.routing.route import RouteBinding, RouteRegistry
from image_proxy.sources.base_source import ImageSource
from image_proxy.sources.filesystem_source import FilesystemSource
from image_proxy.sources.s3_source import S3Source

logger = logging.getLogger("image_proxy.proxy")

# DEV: The catalog maps the `type` string of a source profile to a class.
# Adding a backend means adding a class and one line here.
SOURCE_CATALOG: Dict[str, Type[ImageSource]] = {
    "s3": S3Source,
    "filesystem": FilesystemSource,
}


def create_source(config: SourceConfig) -> ImageSource:
    """
    Factory function to create a source instance from its profile.

    Raises:
        ConfigError: The profile names an unknown source type.
    """
    source_class = SOURCE_CATALOG.get(config.type)
    if not source_class:
        raise ConfigError(f"Unknown type '{config.type}' for source '{config.name}'. "
                          f"Available types are: {list(SOURCE_CATALOG.keys())}")
    return source_class(config)


class ImageProxy:
    """Glues routes, sources and pipelines into one request/response cycle."""

    def __init__(self,
                 registry: RouteRegistry,
                 sources: Mapping[str, ImageSource],
                 pipelines: Mapping[str, TransformPipeline]):
        self.registry = registry
        self.sources = dict(sources)
        self.pipelines = dict(pipelines)

    def handle(self, path: str, query: Mapping[str, str]) -> Tuple[RouteBinding, ProcessedImage]:
        """
        Serves one request.

        Args:
            path: The request path.
            query: Query parameters, one value per key.

        Returns:
            The matched route and the image to send back.

        Raises:
            NoRouteMatched, InvalidOptionError, SourceFetchError,
            DimensionError, ProcessingError.
        """
        route = self.registry.match(path)
        key, options = resolve_options(route, path, query)
        logger.debug("Route '%s' matched %s: key=%s options=%s", route.name, path, key, options)

        raw = self.sources[route.source].fetch(key)
        processed = self.pipelines[route.processor].process(raw, options)

        logger.info("Route '%s' served %s (%d -> %d bytes, %s)", route.name, path,
                    len(raw.data), len(processed.data), processed.mime_type)
        return route, processed


def build_proxy(config: ProxyConfig) -> ImageProxy:
    """
    Creates every component the configured routes need.
    Only sources and processors referenced by a served route are instantiated.
    """
    routes = config.served_routes()
    registry = RouteRegistry.from_configs(routes)

    sources = {}
    pipelines = {}
    for route in routes:
        if route.source not in sources:
            sources[route.source] = create_source(config.sources[route.source])
        if route.processor not in pipelines:
            pipelines[route.processor] = TransformPipeline(config.processors[route.processor])

    logger.info("Loaded %d routes, %d sources, %d processors", len(registry), len(sources), len(pipelines))
    return ImageProxy(registry, sources, pipelines)
