from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from ..logging.diagnostics_log import DiagnosticLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.aggregation import Category, DashboardView, Filters
from ..models.config_models import ReconConfig
from ..models.recon_result import ReconResult
from ..services.aggregator import build_view, default_filters
from ..services.date_extractor import format_date_iso, parse_date
from ..services.file_selector import file_listing_fingerprint
from ..services.header_resolver import resolve_dataset
from ..services.pipeline import PipelineError, ReconciliationPipeline
from ..services.publisher import ResultPublisher
from ..services.summary import render_summary_line
from ..storage import UploadStore, UploadStoreError, create_store

"""CLI entrypoint.

Flow:
- load .env (override mode) and the YAML config
- build the upload store and run the reconciliation pipeline
- print card counts and the trend for the selected filters
- finish with a SUMMARY line

Exit codes: 0 success, 2 degraded run (an optional dataset was left out),
1 fatal (config error, device-status dataset missing, listing failed).
"""

__all__ = [
    "EXIT_SUCCESS",
    "EXIT_DEGRADED",
    "EXIT_FATAL",
    "main",
]

EXIT_SUCCESS = 0
EXIT_DEGRADED = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="rtu-recon", description="RTU/RMU status dataset reconciliation")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="List uploads with their resolved columns then exit")
    p.add_argument("--circle", help="Circle filter")
    p.add_argument("--division", help="Division filter")
    p.add_argument("--sub-division", dest="sub_division", help="Sub-division filter")
    p.add_argument("--date", help="Snapshot date filter (YYYY-MM-DD or DD-MM-YYYY)")
    p.add_argument("--json", dest="json_path", type=Path, help="Write the dashboard view as JSON to this path")
    p.add_argument("--watch", type=float, metavar="SECONDS", help="Poll the upload listing and re-run on changes")
    p.add_argument("--max-polls", type=int, default=None, help="Stop watching after N polls")
    return p.parse_args(argv)


def _select_filters(result: ReconResult, cfg: ReconConfig, args: argparse.Namespace) -> Filters:
    """Defaults for the user, then config filters, then command line flags."""
    base = default_filters(result.records, cfg.user)
    chosen = {
        "circle": base.circle,
        "division": base.division,
        "sub_division": base.sub_division,
        "date": base.date,
    }
    for source in (cfg.filters, args):
        for key in chosen:
            value = getattr(source, key, None)
            if value:
                chosen[key] = value
    return Filters(**chosen)


def _report(view: DashboardView, logger) -> None:
    f = view.filters
    logger.info(
        f"filters circle={f.circle or '-'} division={f.division or '-'} "
        f"sub_division={f.sub_division or '-'} date={f.date or '-'} records={view.record_count}"
    )
    logger.info("counts " + " ".join(f"{c.value}={view.counts[c]}" for c in Category))
    for point in view.trend:
        logger.info(
            f"trend {point.date} " + " ".join(f"{c.value}={point.by_category[c]}" for c in Category)
        )


def _inspect_data(store: UploadStore, cfg: ReconConfig) -> int:
    try:
        files = store.list_files()
    except UploadStoreError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no uploads")
        return EXIT_SUCCESS
    hr = cfg.header_resolution
    for f in files:
        print(f"FILE: {f.name} id={f.file_id} type={f.upload_type or '-'} uploaded_at={f.uploaded_at or '-'}")
        try:
            dataset = store.fetch(f.file_id)
        except UploadStoreError as e:
            print(f"  fetch_error: {e}")
            continue
        resolved = resolve_dataset(dataset, sample_rows=hr.sample_rows, min_dominant_count=hr.min_dominant_count)
        print(f"  rows={len(dataset.rows)} columns={dataset.headers}")
        for role, column in resolved.headers.as_mapping().items():
            print(f"  {role.value}: {column}")
        missing = resolved.headers.missing_roles()
        if missing:
            print(f"  unresolved: {[m.value for m in missing]}")
    return EXIT_SUCCESS


def _run_once(
    pipeline: ReconciliationPipeline,
    publisher: ResultPublisher[ReconResult],
    cfg: ReconConfig,
    args: argparse.Namespace,
    logger,
) -> int:
    run_id = publisher.begin_run()
    try:
        result = pipeline.run(run_id)
    except PipelineError as e:
        logger.error(f"pipeline: {e}")
        return EXIT_FATAL
    publisher.publish(run_id, result)

    filters = _select_filters(result, cfg, args)
    view = build_view(result, filters)
    _report(view, logger)

    if args.json_path is not None:
        args.json_path.parent.mkdir(parents=True, exist_ok=True)
        args.json_path.write_text(json.dumps(view.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"view written to {args.json_path}")

    summary_line = render_summary_line(result, view.counts)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])
    return EXIT_DEGRADED if result.degraded else EXIT_SUCCESS


def _watch(
    store: UploadStore,
    pipeline: ReconciliationPipeline,
    publisher: ResultPublisher[ReconResult],
    cfg: ReconConfig,
    args: argparse.Namespace,
    logger,
) -> int:
    exit_code = EXIT_SUCCESS
    fingerprint: str | None = None
    polls = 0
    while args.max_polls is None or polls < args.max_polls:
        polls += 1
        try:
            current = file_listing_fingerprint(store.list_files())
        except UploadStoreError as e:
            logger.warning(f"watch: listing failed: {e}")
            current = fingerprint
        if current != fingerprint:
            if fingerprint is not None:
                logger.info("upload listing changed; re-running")
            fingerprint = current
            exit_code = _run_once(pipeline, publisher, cfg, args, logger)
        if args.max_polls is not None and polls >= args.max_polls:
            break
        time.sleep(args.watch)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")
    if args.date:
        snapshot = parse_date(args.date)
        if snapshot is None:
            logger.error(f"invalid --date value: {args.date}")
            return EXIT_FATAL
        args.date = format_date_iso(snapshot)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        store = create_store(cfg)
    except UploadStoreError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL

    try:
        if args.inspect_data:
            return _inspect_data(store, cfg)

        logger.info(f"Reconciling uploads from {cfg.store.kind} store")
        pipeline = ReconciliationPipeline(store, cfg, DiagnosticLogBuffer())
        publisher: ResultPublisher[ReconResult] = ResultPublisher()
        if args.watch is not None:
            return _watch(store, pipeline, publisher, cfg, args, logger)
        return _run_once(pipeline, publisher, cfg, args, logger)
    finally:
        store.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
