"""tsr CLI.

  tsr resolve --prices prices.csv --direction long --target 2 --principal 1000
  tsr batch   --jobs jobs.json --preview --export_csv out/batch.csv

Config precedence: defaults < --config file < TSR_* env < flags.
Exit codes: 0 ok, 2 invalid input, 3 not resolvable.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from tsr.completion.plan import CompletionSettings
from tsr.config import deep_merge, load_config
from tsr.data.prices import PriceSeries
from tsr.logging import LogConfig, get_logger, setup_logging
from tsr.reporting.render import render_batch, render_scenario
from tsr.run.batch import load_jobs, run_batch
from tsr.scenario.errors import InvalidInput, NotResolvable
from tsr.scenario.options import ResolverOptions
from tsr.scenario.resolver import resolve
from tsr.scenario.types import Mode, ScenarioRequest

log = get_logger("tsr.cli")

EXIT_OK = 0
EXIT_INVALID = 2
EXIT_UNRESOLVABLE = 3


def _ensure_dir(p: str) -> None:
    Path(p).parent.mkdir(parents=True, exist_ok=True)


def _flag_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    res: Dict[str, Any] = {}
    if args.tolerance is not None:
        res["tolerance_pct"] = args.tolerance
    if args.max_leverage is not None:
        res["max_leverage"] = args.max_leverage
    if args.min_movement is not None:
        res["min_movement_pct"] = args.min_movement
    if args.max_points is not None:
        res["max_points"] = args.max_points
    return {"resolver": res} if res else {}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tsr")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=os.environ.get("TSR_CONFIG", ""))
    common.add_argument("--log_level", default=None)
    common.add_argument("--log_json", action="store_true", default=None)
    common.add_argument("--tolerance", type=float, default=None, help="+- window around target, pct points")
    common.add_argument("--max_leverage", type=int, default=None)
    common.add_argument("--min_movement", type=float, default=None, help="minimum natural movement, pct")
    common.add_argument("--max_points", type=int, default=None)
    common.add_argument("--format", default="compact", help="json|compact|pretty")

    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("resolve", parents=[common], help="resolve one scenario from a price file")
    r.add_argument("--prices", required=True, help=".csv or .json with timestamp,price")
    r.add_argument("--direction", required=True, help="long|short")
    r.add_argument("--target", type=float, required=True, help="target percent (> 0)")
    r.add_argument("--principal", type=float, required=True)
    r.add_argument("--unlucky", action="store_true", help="construct a loss instead of a profit")
    r.add_argument("--export", default="", help="write the result as JSON")

    b = sub.add_parser("batch", parents=[common], help="complete many bots from a jobs file")
    b.add_argument("--jobs", required=True, help="JSON list of {bot, prices, request}")
    b.add_argument("--preview", action="store_true", default=None, help="force preview for every job")
    b.add_argument("--export_csv", default="")
    b.add_argument("--export_json", default="")

    return p


def _cmd_resolve(args: argparse.Namespace, opts: ResolverOptions) -> int:
    series = PriceSeries.from_file(args.prices)
    req = ScenarioRequest.build(args.direction, Mode.from_unlucky(args.unlucky), args.target, args.principal)
    res = resolve(series, req, opts)

    fmt = str(args.format).strip().lower()
    if fmt == "json":
        print(json.dumps(res.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(render_scenario(res, fmt=fmt))

    if args.export:
        _ensure_dir(args.export)
        with open(args.export, "w", encoding="utf-8") as f:
            json.dump(res.to_dict(), f, ensure_ascii=False, indent=2)
    return EXIT_OK


def _cmd_batch(args: argparse.Namespace, opts: ResolverOptions, settings: CompletionSettings) -> int:
    jobs = load_jobs(args.jobs)
    report = run_batch(jobs, opts, settings, preview=args.preview)

    fmt = str(args.format).strip().lower()
    if fmt == "json":
        print(json.dumps([p.to_dict() for p in report.plans], ensure_ascii=False, indent=2))
    else:
        print(render_batch(report, fmt=fmt))

    if args.export_csv:
        report.export_csv(args.export_csv)
    if args.export_json:
        report.export_json(args.export_json)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(file_path=args.config or None)
        cfg = deep_merge(cfg, _flag_overrides(args))
        setup_logging(LogConfig.from_config(cfg, level=args.log_level, json=args.log_json))

        opts = ResolverOptions.from_config(cfg)
        if args.command == "resolve":
            return _cmd_resolve(args, opts)
        return _cmd_batch(args, opts, CompletionSettings.from_config(cfg))
    except InvalidInput as e:
        print(f"invalid input: {e}", file=sys.stderr)
        return EXIT_INVALID
    except NotResolvable as e:
        print(f"not resolvable: {e}", file=sys.stderr)
        return EXIT_UNRESOLVABLE
    except (OSError, KeyError, ValueError, RuntimeError) as e:
        # unreadable / malformed input files
        log.debug("input error", exc_info=True)
        print(f"invalid input: {e}", file=sys.stderr)
        return EXIT_INVALID


if __name__ == "__main__":
    raise SystemExit(main())
