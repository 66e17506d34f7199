from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from .client import InvalidDocumentError, ParseClient, ParseServiceError, service_config
from .export_excel import write_workbook
from .models import Config
from .pipeline import Comparison, Tolerances, compare_payloads
from .view import SORT_KEYS, sort_rows

LOGGER = logging.getLogger(__name__)


def load_config(path: Optional[str]) -> Config:
    if not path or not Path(path).exists():
        LOGGER.debug("No config at %s, using defaults", path)
        return {}
    with open(path, "r", encoding="utf-8") as file:
        return yaml.safe_load(file) or {}


def load_payload(path: str, side: str, client: Optional[ParseClient], profile: Optional[str] = None) -> Any:
    source = Path(path)
    if source.suffix.lower() == ".json":
        with open(source, "r", encoding="utf-8") as file:
            return json.load(file)
    if client is None:
        raise SystemExit(f"{side}: no parse service configured for {path}")
    data = source.read_bytes()
    if side == "CO":
        return client.parse_co(data, source.name, profile)
    return client.parse_fc(data, source.name, profile)


def build_results(config: Config, inputs: Dict[str, str], profiles: Optional[Dict[str, str]] = None) -> Comparison:
    profiles = profiles or {}
    needs_service = any(not p.lower().endswith(".json") for p in inputs.values())
    client = ParseClient(service_config(config)) if needs_service else None
    try:
        co = load_payload(inputs["CO"], "CO", client, profiles.get("CO"))
        fc = load_payload(inputs["FC"], "FC", client, profiles.get("FC"))
    finally:
        if client is not None:
            client.close()
    return compare_payloads(co, fc, Tolerances.from_config(config))


def run(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CO/FC line-item reconciliation")
    parser.add_argument("--co", required=True, help="CO payload (.json) or PDF")
    parser.add_argument("--fc", required=True, help="FC payload (.json) or PDF")
    parser.add_argument("--co-profile")
    parser.add_argument("--fc-profile")
    parser.add_argument("--config", default="config.yaml")
    parser.add_argument("--out", required=True)
    parser.add_argument("--only-diffs", action="store_true")
    parser.add_argument("--sort", default="order", choices=sorted(SORT_KEYS))
    parser.add_argument("--desc", action="store_true")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(levelname)s %(name)s: %(message)s")
    config = load_config(args.config)

    try:
        comparison = build_results(
            config,
            {"CO": args.co, "FC": args.fc},
            {"CO": args.co_profile, "FC": args.fc_profile},
        )
    except (ParseServiceError, InvalidDocumentError) as exc:
        raise SystemExit(str(exc))

    only_diffs = args.only_diffs or bool((config.get("export") or {}).get("only_diffs"))
    rows = sort_rows(comparison.rows, args.sort, args.desc)

    Path(args.out).parent.mkdir(parents=True, exist_ok=True)
    written = write_workbook(
        args.out, rows, comparison.merged, comparison.counters,
        comparison.summary_a, comparison.summary_b, only_diffs=only_diffs,
    )
    counters = comparison.counters
    LOGGER.info("Wrote %s (rows=%d, ok=%d, warn=%d, miss=%d)", args.out, written, counters.ok, counters.warn, counters.miss)
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
