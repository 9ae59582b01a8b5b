"""
Experiment runner: checks a preprocessing pipeline against references from a YAML config.

Usage (from repo root):
    python -m tdmoracle.check.runner experiments/configs/synthetic_smoke.yaml

Outputs in a new run directory:
    - config_resolved.yaml    # the config we actually used
    - meta.json               # environment info (python, numpy, scipy, cpu/ram, git commit)
    - results.jsonl           # one JSON line per scenario
    - summary.csv             # verdict + statistic per scenario
    - (console) rich/tqdm summaries

Config keys:
    experiment_name, output_dir, seed, tolerance,
    pipeline:  {name: passthrough | <dotted.module>, config: {...}}
    scenarios: list of
        {name, boolean_mode, input: a.mtx, reference: b.mtx}
      or
        {name, boolean_mode, synthetic: {height, width, dataset: {...},
                                         transform: {permute_columns, shuffle_rows,
                                                     noise, drop}}}

Design notes:
- File paths are resolved against the config file's directory; the runner
  never changes the working directory.
- A scenario whose matrix cannot be loaded is skipped, not fatal.
- A pipeline failure or an internal-consistency fault marks the scenario and
  makes the run exit non-zero; the remaining scenarios still run.
"""

from __future__ import annotations

import argparse
import datetime as _dt
import importlib
import json
import logging
import os
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import psutil
import scipy
import yaml
from rich.console import Console
from rich.table import Table
from tqdm import tqdm

# Project imports
from tdmoracle.datasets import (
    drop_nonzeros,
    make_term_document_matrix,
    permute_columns,
    perturb_weights,
)
from tdmoracle.errors import (
    InternalConsistencyFault,
    LoadFailure,
    PipelineFailure,
    ScoreAlignmentError,
)
from tdmoracle.logging_config import setup_logging
from tdmoracle.matrix import SparseColumnMatrix, load_matrix_market
from tdmoracle.validate.oracle import ORACLE_NAME, compare_scored, passes

logger = logging.getLogger(__name__)
_console = Console()

SUMMARY_COLUMNS = ["scenario", "status", "kind", "statistic", "passed", "detail", "elapsed_ms"]


# ------------------------- data structures ------------------------- #

@dataclass(frozen=True)
class PipelineSpec:
    name: str
    run_fn: Any
    config: Dict[str, Any]


@dataclass(frozen=True)
class ScenarioSpec:
    name: str
    boolean_mode: bool
    input_path: Optional[Path] = None
    reference_path: Optional[Path] = None
    synthetic: Optional[Dict[str, Any]] = None


# ------------------------- helpers: IO & meta ------------------------- #

def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _write_yaml(obj: Dict[str, Any], path: Path) -> None:
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False)


def _append_jsonl(obj: Dict[str, Any], path: Path) -> None:
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(obj, separators=(",", ":"), ensure_ascii=False))
        f.write("\n")


def _timestamp() -> str:
    return _dt.datetime.now().strftime("%Y%m%d_%H%M%S")


def _ensure_run_dir(base_dir: Path, experiment_name: str) -> Path:
    base_dir.mkdir(parents=True, exist_ok=True)
    run_dir = base_dir / f"{_timestamp()}_{experiment_name}"
    suffix = 1
    while run_dir.exists():
        run_dir = base_dir / f"{_timestamp()}_{experiment_name}_{suffix}"
        suffix += 1
    run_dir.mkdir(parents=False, exist_ok=False)
    return run_dir


def _git_commit_short() -> Optional[str]:
    try:
        out = subprocess.check_output(["git", "rev-parse", "--short", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode("utf-8").strip()
    except (OSError, subprocess.CalledProcessError):
        return None


def _gather_meta() -> Dict[str, Any]:
    import platform
    meta = {
        "python": platform.python_version(),
        "numpy": np.__version__,
        "scipy": scipy.__version__,
        "pandas": pd.__version__,
        "psutil": psutil.__version__,
        "oracle": ORACLE_NAME,
        "git_commit": _git_commit_short(),
        "machine": {
            "cpu": platform.processor() or platform.machine(),
            "cores_logical": psutil.cpu_count(logical=True),
            "cores_physical": psutil.cpu_count(logical=False),
            "ram_gb": round(psutil.virtual_memory().total / (1024**3), 2),
            "platform": platform.platform(),
        },
        "start_time": _dt.datetime.now().isoformat(timespec="seconds"),
        "pid": os.getpid(),
    }
    return meta


# ------------------------- helpers: config ------------------------- #

def _resolve_pipeline(cfg_pipeline: Dict[str, Any]) -> PipelineSpec:
    if not isinstance(cfg_pipeline, dict):
        raise ValueError("'pipeline' must be a mapping with a 'name' field")
    name = cfg_pipeline.get("name", None)
    if not name or not isinstance(name, str):
        raise ValueError("'pipeline' must have a string 'name' field")

    module_name = name if "." in name else f"tdmoracle.pipelines.{name}"
    try:
        mod = importlib.import_module(module_name)
    except ImportError as e:
        raise ImportError(f"Could not import pipeline module '{module_name}': {e!r}") from e

    if not callable(getattr(mod, "run", None)):
        raise AttributeError(
            f"Pipeline module '{module_name}' must define a callable "
            "`run(matrix, *, boolean_mode, config)`"
        )

    config = cfg_pipeline.get("config", {})
    if config is None:
        config = {}
    elif not isinstance(config, dict):
        raise ValueError(f"Pipeline '{name}': 'config' must be a dict if provided")

    return PipelineSpec(name=name, run_fn=getattr(mod, "run"), config=config)


def _resolve_scenarios(cfg_scenarios: List[Dict[str, Any]], base_dir: Path) -> List[ScenarioSpec]:
    specs: List[ScenarioSpec] = []
    seen = set()
    for entry in cfg_scenarios:
        if not isinstance(entry, dict):
            raise ValueError("Each scenario must be a mapping")
        name = entry.get("name", None)
        if not name or not isinstance(name, str):
            raise ValueError("Each scenario must have a string 'name' field")
        if name in seen:
            raise ValueError(f"Duplicate scenario name in config: {name}")
        seen.add(name)

        boolean_mode = bool(entry.get("boolean_mode", False))
        has_files = "input" in entry or "reference" in entry
        has_synth = "synthetic" in entry
        if has_files == has_synth:
            raise ValueError(
                f"Scenario '{name}': give either 'input' + 'reference' or 'synthetic'"
            )

        if has_synth:
            synthetic = entry["synthetic"]
            if not isinstance(synthetic, dict) or "dataset" not in synthetic:
                raise ValueError(f"Scenario '{name}': 'synthetic' must be a dict with a 'dataset'")
            _check_synthetic(name, synthetic)
            specs.append(ScenarioSpec(name=name, boolean_mode=boolean_mode, synthetic=synthetic))
            continue

        if "input" not in entry or "reference" not in entry:
            raise ValueError(f"Scenario '{name}': both 'input' and 'reference' are required")
        specs.append(
            ScenarioSpec(
                name=name,
                boolean_mode=boolean_mode,
                input_path=_resolve_path(entry["input"], base_dir),
                reference_path=_resolve_path(entry["reference"], base_dir),
            )
        )
    return specs


def _check_synthetic(name: str, synthetic: Dict[str, Any]) -> None:
    for key in ("height", "width"):
        n = synthetic.get(key, 0)
        if not isinstance(n, int) or isinstance(n, bool) or n < 0:
            raise ValueError(f"Scenario '{name}': synthetic.{key} must be a nonnegative int")
    dataset = synthetic["dataset"]
    if not isinstance(dataset, dict):
        raise ValueError(f"Scenario '{name}': synthetic.dataset must be a dict")
    # An empty draw validates dist and params without building anything.
    try:
        make_term_document_matrix(0, 0, dict(dataset), np.random.default_rng(0))
    except ValueError as e:
        raise ValueError(f"Scenario '{name}': {e}") from e


def _resolve_path(raw: Any, base_dir: Path) -> Path:
    p = Path(str(raw)).expanduser()
    return p if p.is_absolute() else (base_dir / p).resolve()


# ------------------------- scenario inputs ------------------------- #

def _run_pipeline(
    pipeline: PipelineSpec, matrix: SparseColumnMatrix, boolean_mode: bool
) -> Tuple[SparseColumnMatrix, np.ndarray]:
    try:
        out = pipeline.run_fn(matrix, boolean_mode=boolean_mode, config=pipeline.config)
    except PipelineFailure:
        raise
    except Exception as e:
        raise PipelineFailure(f"pipeline '{pipeline.name}' failed: {e!r}") from e
    if not isinstance(out, tuple) or len(out) != 2 or not isinstance(out[0], SparseColumnMatrix):
        raise PipelineFailure(
            f"pipeline '{pipeline.name}' must return (SparseColumnMatrix, scores)"
        )
    return out[0], np.asarray(out[1], dtype=np.float64)


def _file_inputs(
    scenario: ScenarioSpec, pipeline: PipelineSpec
) -> Tuple[SparseColumnMatrix, np.ndarray, SparseColumnMatrix, np.ndarray]:
    logger.info("loading unprocessed matrix %s", scenario.input_path)
    raw = load_matrix_market(scenario.input_path)
    m0, s0 = _run_pipeline(pipeline, raw, scenario.boolean_mode)

    logger.info("loading reference matrix %s", scenario.reference_path)
    m1 = load_matrix_market(scenario.reference_path)
    return m0, s0, m1, np.asarray(m1.data)


def _synthetic_inputs(
    scenario: ScenarioSpec, pipeline: PipelineSpec, rng: np.random.Generator
) -> Tuple[SparseColumnMatrix, np.ndarray, SparseColumnMatrix, np.ndarray]:
    synth = scenario.synthetic or {}
    height = int(synth.get("height", 200))
    width = int(synth.get("width", 100))
    base = make_term_document_matrix(height, width, dict(synth["dataset"]), rng)
    m0, s0 = _run_pipeline(pipeline, base, scenario.boolean_mode)

    # The reference is the pipeline's own output put through the transforms.
    transform = synth.get("transform", {}) or {}
    ref = m0.with_weights(s0)
    if transform.get("permute_columns", False):
        ref = permute_columns(ref, rng=rng, shuffle_rows=bool(transform.get("shuffle_rows", True)))
    noise = float(transform.get("noise", 0.0))
    if noise > 0:
        ref = perturb_weights(ref, noise, rng)
    drop = int(transform.get("drop", 0))
    if drop > 0:
        ref = drop_nonzeros(ref, min(drop, ref.nnz), rng)
    return m0, s0, ref, np.asarray(ref.data)


# ------------------------- core runner ------------------------- #

def run_scenario(
    scenario: ScenarioSpec,
    pipeline: PipelineSpec,
    rng: np.random.Generator,
    tolerance: float,
) -> Dict[str, Any]:
    """
    Run one scenario and return its result record.

    Load failures, pipeline exceptions, misaligned scores and consistency
    faults end up in the record's status; anything else propagates.
    """
    record: Dict[str, Any] = {
        "scenario": scenario.name,
        "boolean_mode": scenario.boolean_mode,
        "status": "ok",
        "passed": False,
    }
    t0 = time.perf_counter_ns()
    try:
        if scenario.synthetic is not None:
            m0, s0, m1, s1 = _synthetic_inputs(scenario, pipeline, rng)
        else:
            m0, s0, m1, s1 = _file_inputs(scenario, pipeline)

        report = compare_scored(
            m0,
            s0,
            m1,
            s1,
            boolean_mode0=scenario.boolean_mode,
            boolean_mode1=scenario.boolean_mode,
        )
    except LoadFailure as e:
        logger.warning("scenario %s skipped: %s", scenario.name, e)
        record.update(status="skipped", detail=str(e))
    except (PipelineFailure, ScoreAlignmentError) as e:
        logger.error("scenario %s: pipeline failed: %s", scenario.name, e)
        record.update(status="error", detail=str(e))
    except InternalConsistencyFault as e:
        logger.error("scenario %s: internal consistency fault: %s", scenario.name, e)
        record.update(status="fault", detail=str(e))
    else:
        record.update(report.to_record())
        record["passed"] = passes(report, tolerance)
    record["elapsed_ms"] = round((time.perf_counter_ns() - t0) / 1e6, 3)
    return record


def _aggregate_summary(jsonl_path: Path) -> pd.DataFrame:
    if not jsonl_path.exists():
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    df = pd.read_json(jsonl_path, lines=True)
    if df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    for col in SUMMARY_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df[SUMMARY_COLUMNS].reset_index(drop=True)


def _print_rich_summary(summary: pd.DataFrame) -> None:
    table = Table(title="Oracle Summary")
    table.add_column("Scenario", style="bold")
    table.add_column("Status")
    table.add_column("Verdict")
    table.add_column("Statistic", justify="right")
    table.add_column("Pass", justify="center")

    status_style = {"ok": "green", "skipped": "yellow", "error": "red", "fault": "bold red"}
    for row in summary.itertuples(index=False):
        stat = row.statistic
        stat_cell = "—" if stat is None or pd.isna(stat) else f"{float(stat):.6g}"
        kind = row.kind if isinstance(row.kind, str) else "—"
        style = status_style.get(row.status, "white")
        table.add_row(
            str(row.scenario),
            f"[{style}]{row.status}[/]",
            kind,
            stat_cell,
            "[green]✓[/]" if bool(row.passed) else "[red]✗[/]",
        )
    _console.print()
    _console.print(table)
    _console.print()


def run_experiment(config_path: Path) -> Tuple[Path, bool]:
    """
    Run every scenario in the config. Returns (run_dir, ok), where ok is False
    if any scenario errored, faulted, or failed the tolerance.
    """
    cfg = _load_yaml(config_path)
    if not isinstance(cfg, dict):
        raise ValueError(f"Config {config_path} must be a mapping")

    # Required keys & basic validation
    required = ["experiment_name", "output_dir", "seed", "tolerance", "pipeline", "scenarios"]
    missing = [k for k in required if k not in cfg]
    if missing:
        raise ValueError(f"Missing required config keys: {missing}")

    base_dir = config_path.resolve().parent
    experiment_name: str = str(cfg["experiment_name"])
    output_dir = _resolve_path(cfg["output_dir"], base_dir)
    tolerance: float = float(cfg["tolerance"])
    if tolerance < 0:
        raise ValueError("Config 'tolerance' must be nonnegative")

    pipeline = _resolve_pipeline(cfg["pipeline"])
    scenarios = _resolve_scenarios(list(cfg["scenarios"] or []), base_dir)
    if not scenarios:
        raise ValueError("Config 'scenarios' must be a non-empty list")

    run_dir = _ensure_run_dir(output_dir, experiment_name)
    results_path = run_dir / "results.jsonl"
    summary_path = run_dir / "summary.csv"
    meta_path = run_dir / "meta.json"
    cfg_resolved_path = run_dir / "config_resolved.yaml"

    # Persist resolved config early
    _write_yaml(cfg, cfg_resolved_path)

    with meta_path.open("w", encoding="utf-8") as f:
        json.dump(_gather_meta(), f, indent=2)

    rng = np.random.default_rng(int(cfg["seed"]))

    _console.print(f"[bold green]Run directory:[/bold green] {run_dir}")
    _console.print(f"[bold]Experiment:[/bold] {experiment_name}")
    _console.print(f"[bold]Pipeline:[/bold] {pipeline.name}")
    _console.print()

    ok = True
    for scenario in tqdm(scenarios, desc="Scenarios", unit="scenario"):
        record = run_scenario(scenario, pipeline, rng, tolerance)
        _append_jsonl(record, results_path)
        if record["status"] in ("error", "fault"):
            ok = False
        elif record["status"] == "ok" and not record["passed"]:
            ok = False

    summary_df = _aggregate_summary(results_path)
    summary_df.to_csv(summary_path, index=False)

    _print_rich_summary(summary_df)

    _console.print(f"[bold green]Done.[/bold green] Wrote:")
    _console.print(f" - {results_path}")
    _console.print(f" - {summary_path}")
    _console.print(f" - {meta_path}")
    _console.print(f" - {cfg_resolved_path}")

    return run_dir, ok


# ------------------------- CLI ------------------------- #

def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Check a term-document preprocessing pipeline against references.")
    p.add_argument("config", type=str, help="Path to YAML experiment config")
    p.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    p.add_argument("--log-file", default=None, help="Optional log file")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(getattr(logging, str(args.log_level).upper(), logging.INFO), args.log_file)
    config_path = Path(args.config).resolve()
    if not config_path.exists():
        raise SystemExit(f"Config file not found: {config_path}")
    try:
        _, ok = run_experiment(config_path)
    except Exception as e:
        _console.print(f"[bold red]Runner failed:[/bold red] {e!r}")
        raise
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
