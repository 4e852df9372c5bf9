"""
Search index backends used by the deduplication job.

Each backend implements IndexClient: count, bounded fetch, bulk delete by
id, and commit.
"""

from search_index.protocols import IndexClient
from search_index.solr_client import SolrIndexClient
from search_index.meilisearch_client import MeilisearchIndexClient
from search_index.registry import BackendRegistry, backends, index_factory

__all__ = [
    'IndexClient',
    'SolrIndexClient',
    'MeilisearchIndexClient',
    'BackendRegistry',
    'backends',
    'index_factory',
]
