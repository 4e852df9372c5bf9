"""
Solr index client over plain HTTP.

Talks to a core/collection URL such as http://localhost:8983/solr/nutch:

    count   GET  {url}/select?q=*:*&fl=id&rows=1      -> response.numFound
    fetch   GET  {url}/select?q=*:*&fl=...&start=&rows=
    delete  POST {url}/update  {"delete": [ids]}
    commit  POST {url}/update  {"commit": {}}
"""

from typing import Any, Dict, List, Optional, Sequence

import requests

from common.config import config
from common.errors import IndexBackendError
from common.logging.logger import get_logger
from search_index.protocols import IndexClient

logger = get_logger("solr_client")

MATCH_ALL_QUERY = "*:*"


class SolrIndexClient(IndexClient):
    """Synchronous Solr client; one requests.Session per instance."""

    def __init__(
        self,
        url: str,
        id_field: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        if not url:
            raise ValueError("url is required")

        self._url = url.rstrip("/")
        self._id_field = id_field or config.get("index.fields.id")
        self._timeout = timeout if timeout is not None else config.get("index.timeout_seconds")
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "solr"

    @property
    def url(self) -> str:
        return self._url

    def count(self) -> int:
        body = self._select({
            'q': MATCH_ALL_QUERY,
            'fl': self._id_field,
            'rows': 1,
        })
        return int(body['response']['numFound'])

    def fetch(self, fields: Sequence[str], start: int, limit: int) -> List[Dict[str, Any]]:
        body = self._select({
            'q': MATCH_ALL_QUERY,
            'fl': ",".join(fields),
            'start': start,
            'rows': limit,
        })
        return list(body['response']['docs'])

    def delete(self, ids: Sequence[str]) -> None:
        if not ids:
            return
        self._update({'delete': list(ids)})

    def commit(self) -> None:
        self._update({'commit': {}})

    def close(self) -> None:
        self._session.close()

    # ---- transport ----

    def _select(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = dict(params, wt='json')
        try:
            resp = self._session.get(f"{self._url}/select", params=params, timeout=self._timeout)
            resp.raise_for_status()
            body = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise IndexBackendError(self.name, f"select failed: {e}") from e

        if 'response' not in body:
            raise IndexBackendError(self.name, f"select returned no response section: {body!r}")
        return body

    def _update(self, payload: Dict[str, Any]) -> None:
        try:
            resp = self._session.post(
                f"{self._url}/update",
                json=payload,
                params={'wt': 'json'},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise IndexBackendError(self.name, f"update failed: {e}") from e

    def __repr__(self) -> str:
        return f"<SolrIndexClient url={self._url}>"
