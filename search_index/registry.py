"""Backend registry: builds an IndexClient from a backend name and endpoint."""

from typing import Callable, Dict, List, Optional

from common.config import config
from search_index.protocols import IndexClient
from search_index.solr_client import SolrIndexClient
from search_index.meilisearch_client import MeilisearchIndexClient

IndexFactory = Callable[[], IndexClient]


class BackendRegistry:
    """Register and look up index client constructors by backend name."""

    def __init__(self):
        self._builders: Dict[str, Callable[..., IndexClient]] = {}

    def register(self, name: str, builder: Callable[..., IndexClient]) -> None:
        """Register a builder (replaces existing with same name)."""
        self._builders[name] = builder

    def get(self, name: str) -> Optional[Callable[..., IndexClient]]:
        return self._builders.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._builders.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._builders

    def factory(self, backend: str, url: str, **options) -> IndexFactory:
        """
        Returns a zero-argument callable producing a fresh client per call.

        Each pipeline stage opens its own client, so the factory is what
        gets passed around rather than a shared connection.
        """
        builder = self.get(backend)
        if builder is None:
            raise ValueError(f"Unknown index backend '{backend}' (known: {self.names})")
        if not url:
            raise ValueError("index endpoint url is required")
        return lambda: builder(url, **options)


backends = BackendRegistry()
backends.register("solr", SolrIndexClient)
backends.register("meilisearch", MeilisearchIndexClient)


def index_factory(url: Optional[str] = None, backend: Optional[str] = None,
                  index_name: Optional[str] = None) -> IndexFactory:
    """Builds a client factory from explicit arguments with config fallbacks."""
    backend = backend or config.get("index.backend")
    url = url or config.get("index.url")
    options = {}
    if backend == "meilisearch" and index_name:
        options['index_name'] = index_name
    return backends.factory(backend, url, **options)
