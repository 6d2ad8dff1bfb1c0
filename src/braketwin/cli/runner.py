"""CLI runner for the comparative model evaluation report."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from braketwin.data import generate_race_data, scenarios_from_points
from braketwin.evaluation import (
    DEFAULT_SCENARIOS,
    EvaluationHarness,
    ModelName,
    evaluation_result_to_jsonable,
    render_report,
)
from braketwin.fusion import FusionEngine


REPORT_JSON_NAME = "evaluation_report.json"
REPORT_MARKDOWN_NAME = "evaluation_report.md"


@dataclass(frozen=True, slots=True)
class EvaluationArtifacts:
    """Files emitted by one evaluation run."""

    output_dir: Path
    report_json_path: Path
    report_markdown_path: Path
    winner: ModelName


def build_parser() -> argparse.ArgumentParser:
    """Create parser for the evaluation runner."""
    parser = argparse.ArgumentParser(
        prog="braketwin-eval",
        description="Compare physics, learned, and fused brake models on the scenario battery.",
    )
    parser.add_argument("--output-dir", type=Path, default=Path("evaluation_output"))
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument(
        "--models",
        nargs="+",
        choices=tuple(model.value for model in ModelName),
        default=None,
        help="Subset of models to evaluate (default: all).",
    )
    parser.add_argument(
        "--synthetic-laps",
        type=int,
        default=0,
        help="Append scenarios built from this many laps of seeded synthetic telemetry.",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        default="WARNING",
    )
    return parser


def run_evaluation_from_args(args: argparse.Namespace) -> EvaluationArtifacts:
    """Run the harness and write JSON and markdown reports."""
    if args.synthetic_laps < 0:
        raise ValueError("--synthetic-laps must be >= 0")

    scenarios = list(DEFAULT_SCENARIOS)
    if args.synthetic_laps > 0:
        points = generate_race_data(num_laps=args.synthetic_laps, seed=args.seed)
        scenarios.extend(scenarios_from_points(points))

    fusion = FusionEngine(seed=args.seed)
    harness = EvaluationHarness(scenarios=scenarios, fusion=fusion, seed=args.seed)
    models = None if args.models is None else [ModelName(name) for name in args.models]

    started = time.perf_counter()
    result = harness.evaluate_models(models)
    elapsed_s = time.perf_counter() - started

    output_dir = args.output_dir.resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / REPORT_JSON_NAME
    markdown_path = output_dir / REPORT_MARKDOWN_NAME

    payload = evaluation_result_to_jsonable(result)
    payload["run"] = {
        "seed": args.seed,
        "scenario_count": len(scenarios),
        "elapsed_s": float(elapsed_s),
        "fusion_model": fusion.model_info(),
    }
    _write_json(json_path, payload)
    markdown_path.write_text(render_report(result), encoding="utf-8")
    return EvaluationArtifacts(
        output_dir=output_dir,
        report_json_path=json_path,
        report_markdown_path=markdown_path,
        winner=result.winner,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        artifacts = run_evaluation_from_args(args)
    except Exception as exc:
        print(f"[ERROR] Evaluation failed: {exc}", file=sys.stderr)
        return 2

    print(f"report_json: {artifacts.report_json_path}")
    print(f"report_markdown: {artifacts.report_markdown_path}")
    print(f"winner: {artifacts.winner.value}")
    return 0


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


if __name__ == "__main__":
    raise SystemExit(main())
