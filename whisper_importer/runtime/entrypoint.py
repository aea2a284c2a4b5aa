"""Command line entrypoint: plan or run a batch import of whisper files."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from whisper_importer.config.import_config import load_import_config
from whisper_importer.config.index_rules import read_index_rules
from whisper_importer.io.chunk_store import FileChunkStore
from whisper_importer.io.whisper_reader import WhisperFileReader
from whisper_importer.runtime.driver import (
    ImportResult,
    import_metric,
    metric_id_from_path,
    newest_timestamp,
)
from whisper_importer.runtime.prometheus_metrics import ImportMetricsClient
from whisper_importer.runtime.summary import print_plan_summary, summarize_plan

if TYPE_CHECKING:
    from whisper_importer.config.import_config import ImportConfig
    from whisper_importer.config.index_rules import IndexRules
    from whisper_importer.io.chunk_store import ChunkStore

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def find_whisper_files(root: Path) -> list[Path]:
    if not root.is_dir():
        raise NotADirectoryError(root)
    return sorted(root.rglob("*.wsp"))


def is_stale(
    rules: IndexRules,
    metric_id: str,
    newest_ts: int,
    now: datetime,
) -> bool:
    """
    Return True when the metric would be pruned from the index right away.
    """
    index, _ = rules.match(metric_id)
    check = rules.checks(now)[index]
    return not check.keep and newest_ts < check.cutoff


def _import_file(
    *,
    path: Path,
    root: Path,
    config: ImportConfig,
    store: ChunkStore,
    rules: IndexRules | None,
    started_at: datetime,
) -> ImportResult | None:
    metric_id = metric_id_from_path(path, root, config.name_prefix)
    reader = WhisperFileReader(path)
    newest = newest_timestamp(reader)

    if rules is not None and is_stale(rules, metric_id, newest, started_at):
        LOGGER.info(
            "Skipping stale metric",
            extra={"metric_id": metric_id, "newest_ts": newest},
        )
        return None

    return import_metric(metric_id, reader, config, store, now=newest)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)

    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to the import JSON config (retentions, chunk spans).",
    )

    parser.add_argument(
        "--whisper-dir",
        type=Path,
        required=True,
        help="Root directory scanned recursively for *.wsp files.",
    )

    parser.add_argument(
        "--plan",
        action="store_true",
        help="Print the conversion plan of every file (no conversion).",
    )

    parser.add_argument(
        "--run",
        action="store_true",
        help="Convert every file and write its chunks to --output-dir.",
    )

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("chunks"),
        help="Directory where encoded chunks and index.jsonl are written.",
    )

    parser.add_argument(
        "--index-rules",
        type=Path,
        default=None,
        help="Optional index rules INI; metrics already stale are skipped.",
    )

    parser.add_argument(
        "--threads",
        type=int,
        default=4,
        help="Number of files converted concurrently.",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if not args.plan and not args.run:
        print("Error: one of --plan or --run must be specified.", file=sys.stderr)
        return 2

    if args.threads <= 0:
        print("Error: --threads must be > 0.", file=sys.stderr)
        return 2

    config = load_import_config(args.config)
    rules = read_index_rules(args.index_rules) if args.index_rules else None
    files = find_whisper_files(args.whisper_dir)

    LOGGER.info(
        "Found whisper files",
        extra={"count": len(files), "root": str(args.whisper_dir)},
    )

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    if args.plan:
        for path in files:
            reader = WhisperFileReader(path)
            summary = summarize_plan(
                metric_id=metric_id_from_path(path, args.whisper_dir, config.name_prefix),
                archives=reader.archives,
                config=config,
            )
            print_plan_summary(summary)

    if not args.run:
        return 0

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    started_at = datetime.now(timezone.utc)
    started = time.monotonic()
    results: list[ImportResult] = []
    failed = 0

    store = FileChunkStore(args.output_dir)
    try:
        with ThreadPoolExecutor(max_workers=args.threads) as pool:
            futures = {
                pool.submit(
                    _import_file,
                    path=path,
                    root=args.whisper_dir,
                    config=config,
                    store=store,
                    rules=rules,
                    started_at=started_at,
                ): path
                for path in files
            }

            for future in as_completed(futures):
                path = futures[future]
                try:
                    result = future.result()
                except Exception:
                    failed += 1
                    LOGGER.exception("Import failed", extra={"path": str(path)})
                    continue

                if result is not None:
                    results.append(result)
    finally:
        store.close()

    duration = time.monotonic() - started

    print(
        f"Imported {len(results)} metrics "
        f"({sum(r.chunks_written for r in results)} chunks), "
        f"{failed} failed, in {duration:.1f}s"
    )

    # --- Prometheus metrics (side-effect only) ---
    metrics = ImportMetricsClient()

    if metrics.is_enabled():
        try:
            metrics.record_run(
                results=results,
                failed=failed,
                duration_seconds=duration,
            )
            metrics.push_all(job="whisper_import")
        except Exception:
            LOGGER.exception("Prometheus push failed")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
