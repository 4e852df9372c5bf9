"""
Command line entry point.

Usage:
    dedup http://localhost:8983/solr/nutch
    dedup http://localhost:8983/solr/nutch --no-commit
    dedup http://localhost:7700 --backend meilisearch --index-name pages --resolvers 8

Exit status is 0 on success, 1 on any job failure and 2 on bad usage.
"""

import argparse
import json
import sys
from typing import List, Optional

from common.config import config
from common.errors import DedupError
from common.logging.logger import get_logger, setup_logger
from dedup.job import DedupJob
from search_index.registry import backends, index_factory

logger = get_logger("dedup")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dedup",
        description="Delete documents sharing a content fingerprint, keeping one per fingerprint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Deduplicate a Solr core and commit
    dedup http://localhost:8983/solr/nutch

    # Leave the commit to a later job
    dedup http://localhost:8983/solr/nutch --no-commit
"""
    )
    parser.add_argument(
        "endpoint",
        help="Index endpoint URL (Solr core URL or Meilisearch server URL)"
    )
    parser.add_argument(
        "--no-commit",
        action="store_true",
        default=config.get("dedup.no_commit"),
        help="Submit deletions but do not commit them"
    )
    parser.add_argument(
        "--backend",
        choices=backends.names,
        default=config.get("index.backend"),
        help="Index backend"
    )
    parser.add_argument(
        "--index-name",
        default=config.get("index.name"),
        help="Index uid (Meilisearch only)"
    )
    parser.add_argument(
        "--scanners",
        type=int,
        default=config.get("dedup.scanners"),
        help="Number of partitions scanned in parallel"
    )
    parser.add_argument(
        "--resolvers",
        type=int,
        default=config.get("dedup.resolvers"),
        help="Number of parallel resolvers, each with its own deletion batch"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=config.get("dedup.batch_size"),
        help="Deletions per submitted batch"
    )
    parser.add_argument(
        "--stats-file",
        help="Output file for statistics JSON"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logger("dedup", console_output=True)
    config.validate()

    for name in ("scanners", "resolvers", "batch_size"):
        if getattr(args, name) < 1:
            parser.error(f"--{name.replace('_', '-')} must be >= 1")

    logger.info("=" * 50)
    logger.info("INDEX DEDUPLICATION")
    logger.info(f"Endpoint: {args.endpoint} ({args.backend})")
    logger.info(f"Commit: {'no' if args.no_commit else 'yes'}")
    logger.info("=" * 50)

    try:
        factory = index_factory(args.endpoint, backend=args.backend, index_name=args.index_name)
        job = DedupJob(
            factory,
            num_scanners=args.scanners,
            num_resolvers=args.resolvers,
            batch_size=args.batch_size,
            no_commit=args.no_commit,
        )
        stats = job.run()
    except (DedupError, ValueError) as e:
        logger.error(f"Deduplication failed: {e}")
        return 1

    if args.stats_file:
        try:
            with open(args.stats_file, 'w') as f:
                json.dump(stats.to_dict(), f, indent=2)
        except OSError as e:
            logger.error(f"Could not write statistics to {args.stats_file}: {e}")
            return 1
        logger.info(f"Statistics written to {args.stats_file}")

    counters = stats.counters
    print("\n" + "=" * 60)
    print("DEDUPLICATION SUMMARY")
    print("=" * 60)
    print(f"Duration: {stats.duration_human}")
    print(f"Partitions: {stats.partitions}")
    print(f"Records scanned: {counters.get('scanned', 0):,}")
    print(f"Fingerprints: {counters.get('groups', 0):,} "
          f"({counters.get('duplicate_groups', 0):,} with duplicates)")
    print(f"Deleted: {counters.get('deleted', 0):,} in {counters.get('flushes', 0):,} batches")
    print(f"Committed: {'yes' if stats.committed else 'no'}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
