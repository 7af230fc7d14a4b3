"""
Mailscout - CLI Runner

Reads a table of websites (local CSV, CSV URL or Google Sheet), finds the
public contact emails of each site and writes the table back with an extra
``emails`` column.

Usage:
  python -m mailscout.run \
    --input leads.csv \
    --config config/example.yaml \
    --out ./out

Dry run (validate input/config only):
  python -m mailscout.run --input leads.csv --dry-run

Exit codes:
  0 - success
  1 - config error (file missing, invalid YAML or invalid values)
  2 - input error (table unavailable or empty; nothing written)
  3 - processing error (output or browser failures)
"""
from __future__ import annotations

import argparse
import platform
import sys
import time
from collections import Counter
from pathlib import Path
from typing import Optional

import yaml
from playwright.sync_api import Error as PlaywrightError
from pydantic import ValidationError

from src.ops_logger import OpsLogger
from src.pipeline.batch import BatchDriver
from src.pipeline.export import AnnotatedCsvExporter
from src.pipeline.fetchers.playwright import PlaywrightFetcher, RenderContext
from src.pipeline.fetchers.static import StaticFetcher
from src.pipeline.ingest import IngestPipeline
from src.pipeline.sheets import EmptySource, SourceUnavailable, load_records, output_filename_for
from src.schemas import RunConfig


def load_config(config_path: Optional[Path]) -> RunConfig:
    if config_path is None:
        return RunConfig()
    if not config_path.exists() or not config_path.is_file():
        print(f"Config error: file not found: {config_path}", file=sys.stderr)
        sys.exit(1)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        print(f"Config error: invalid YAML in {config_path}: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(raw, dict):
        print(f"Config error: top level of {config_path} must be a mapping", file=sys.stderr)
        sys.exit(1)
    try:
        return RunConfig.model_validate(raw)
    except ValidationError as e:
        print(f"Config error: {config_path}: {e}", file=sys.stderr)
        sys.exit(1)


def apply_overrides(cfg: RunConfig, args: argparse.Namespace) -> RunConfig:
    """CLI flags win over config values."""
    if args.out is not None:
        cfg.output.dir = args.out
    if args.output is not None:
        cfg.output.filename = args.output
    if args.no_headless:
        cfg.render.enabled = False
    if args.static_timeout is not None:
        cfg.fetch.static_timeout_s = args.static_timeout
    if args.render_timeout_ms is not None:
        cfg.render.timeout_ms = args.render_timeout_ms
    if args.website_column is not None:
        cfg.source.website_column = args.website_column
    return cfg


def ensure_out_dir(out_dir: Path) -> None:
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        print(f"Output error: cannot write to {out_dir}: {e}", file=sys.stderr)
        sys.exit(3)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mailscout.run", description="Find public contact emails for a table of websites")
    parser.add_argument("--input", "-i", required=True, help="CSV file path, CSV URL or Google Sheets link")
    parser.add_argument("--config", "-c", default=None, help="Path to YAML config file")
    parser.add_argument("--out", "-o", default=None, help="Output directory (default: config output.dir or .)")
    parser.add_argument("--output", default=None, help="Output CSV filename (default: derived from the input)")
    parser.add_argument("--website-column", default=None, help="Column holding the site URL (default: website)")
    parser.add_argument("--no-headless", action="store_true", help="Disable headless render fallback (static-only)")
    parser.add_argument("--static-timeout", type=float, default=None, help="Static fetch timeout seconds (default 15.0)")
    parser.add_argument("--render-timeout-ms", type=int, default=None, help="Headless navigation timeout ms (default 30000)")
    parser.add_argument("--dry-run", action="store_true", help="Validate input/config and exit")
    parser.add_argument("--ops-log", default=None, help="Path to ops JSONL log file (default: <out>/ops.log)")
    parser.add_argument("--ops-stdout", action="store_true", help="Also mirror ops JSON to stdout")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = apply_overrides(load_config(Path(args.config) if args.config else None), args)
    out_dir = Path(cfg.output.dir)
    ensure_out_dir(out_dir)

    static_fetcher = StaticFetcher(timeout_s=cfg.fetch.static_timeout_s, user_agent=cfg.fetch.user_agent)
    try:
        try:
            headers, records = load_records(args.input, static_fetcher)
        except SourceUnavailable as e:
            print(f"Input error: {e}", file=sys.stderr)
            return 2
        except EmptySource as e:
            print(f"Input error: {e}", file=sys.stderr)
            return 2

        if cfg.source.website_column not in headers:
            print(f"⚠️  Column '{cfg.source.website_column}' not found; every row will get []", file=sys.stderr)

        filename = cfg.output.filename or output_filename_for(args.input, static_fetcher)

        if args.dry_run:
            print("✅ Dry-run validation passed")
            print(f" - Input: {args.input}")
            print(f" - Records: {len(records)}")
            print(f" - Output: {out_dir / filename}")
            print(f" - Headless fallback: {'on' if cfg.render.enabled else 'off'}")
            return 0

        ops_log_path = Path(args.ops_log) if args.ops_log else (out_dir / "ops.log")
        ops_logger = OpsLogger(ops_log_path, also_stdout=bool(args.ops_stdout))

        print(f"Records: {len(records)} | headless fallback: {'on' if cfg.render.enabled else 'off'}")
        proc_start = time.perf_counter()

        render_context = RenderContext()
        try:
            playwright_fetcher = None
            if cfg.render.enabled:
                render_context.start()
                playwright_fetcher = PlaywrightFetcher(
                    render_context,
                    timeout_ms=cfg.render.timeout_ms,
                    wait_until=cfg.render.wait_until,
                    user_agent=cfg.fetch.user_agent,
                )
            pipeline = IngestPipeline(
                static_fetcher=static_fetcher,
                playwright_fetcher=playwright_fetcher,
                enable_headless=cfg.render.enabled,
            )
            pipeline.ops_json_enabled = cfg.ops.ops_json
            driver = BatchDriver(pipeline, website_column=cfg.source.website_column, ops_logger=ops_logger)
            results = driver.run(records)
        except PlaywrightError as e:
            print(f"Browser error: {e}", file=sys.stderr)
            return 3
        finally:
            render_context.close()

        try:
            out_path = AnnotatedCsvExporter(out_dir).to_csv(records, headers, filename)
        except OSError as e:
            print(f"Export error: {e}", file=sys.stderr)
            return 3

        statuses = Counter(r.status.value for r in results)
        total_emails = sum(len(r.emails) for r in results)
        ops_logger.emit_summary(
            records=len(records),
            statuses=dict(statuses),
            total_emails=total_emails,
            output=str(out_path),
            durations={"wall_s": round(max(0.0, time.perf_counter() - proc_start), 2)},
            python=platform.python_version(),
            host={"platform": platform.system(), "release": platform.release(), "machine": platform.machine()},
        )

        print(f"\n✅ Done! Output written to {out_path}")
        print(f"   Records: {len(records)}")
        print(f"   Emails: {total_emails}")
        print(
            "   found={found} empty={empty} error={error} missing_url={missing}".format(
                found=statuses.get("found", 0),
                empty=statuses.get("empty", 0),
                error=statuses.get("error", 0),
                missing=statuses.get("missing_url", 0),
            )
        )
        return 0
    finally:
        static_fetcher.close()


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
