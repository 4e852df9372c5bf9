"""Range scanning: one bounded fetch per partition, streamed as (fingerprint, record) pairs."""

from typing import Iterator, Optional, Tuple

from common.errors import IndexBackendError, ScanError
from common.logging.logger import get_logger
from common.models import FieldMapping, IndexRecord, PartitionRange
from search_index.protocols import IndexClient

logger = get_logger("scanner")


class RangeScanner:
    """
    Reads one partition of the index.

    scan() returns a generator: nothing is fetched until the first item is
    requested, and it cannot be restarted. If the index returns fewer
    documents than the partition expected (the index shrank since planning),
    fewer pairs are produced without error.
    """

    def __init__(self, index: IndexClient, fields: Optional[FieldMapping] = None):
        if index is None:
            raise ValueError("index is required")
        self.index = index
        self.fields = fields or FieldMapping.from_config()

    def scan(self, partition: PartitionRange) -> Iterator[Tuple[str, IndexRecord]]:
        if partition.is_empty:
            return

        try:
            docs = self.index.fetch(self.fields.projection, partition.start, partition.count)
        except IndexBackendError as e:
            raise ScanError(partition, str(e)) from e

        if len(docs) < partition.count:
            logger.info(f"{partition}: index returned {len(docs)} of {partition.count} documents")

        for doc in docs[:partition.count]:
            try:
                record = IndexRecord.from_document(doc, self.fields)
            except (KeyError, ValueError, TypeError) as e:
                raise ScanError(partition, f"malformed document: {e}") from e
            yield record.fingerprint, record
