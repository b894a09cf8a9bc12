"""CLI for exploring post timing and fitting the Stan count models.

Usage examples:
    python -m hntiming.analysis.model_fitting.cli explore \
        --input-file data/raw/hn_posts.parquet --timezone America/New_York

    python -m hntiming.analysis.model_fitting.cli fit \
        --experiment ny_2023 --models simple,hierarchical --method nuts \
        --timezone America/New_York --start 2023-01-01 --end 2024-01-01

    python -m hntiming.analysis.model_fitting.cli fit \
        --models hierarchical --method advi --opencl --opencl-ids 0,0 \
        --loo-subsample 2000 --loo-approximation lpd

Environment (read from .env if present):
    CMDSTAN         path to the CmdStan installation
    HNTIMING_HOME   project root holding data/ and results/

Outputs written into results/model_fitting/<experiment>/ (or --output-dir):
    fit_<model>_<method>_<shortSpecHash>_<shortDataHash>.json
    cells_*.csv, draws_*.npz
    fit_index.parquet, spec_manifest.csv, loo_comparison.csv
    figures/*.pdf|png
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv
import pandas as pd

from ...config.paths import PathManager
from ...data_handling.loaders import load_posts, resolve_posts_path
from ...data_handling.processors.post_processor import OUTCOME_COLUMNS, PostProcessingConfig, PostProcessor
from ...data_handling.simulate import simulate_posts
from ...data_handling.validators import PostDataValidator, validate_or_raise
from ...plotting.style import apply_paper_style
from ..visualization.explore import explore_posts
from .api import run_analysis
from .loo import APPROXIMATIONS
from .models import MODEL_REGISTRY
from .specs import LooSpec
from .trainer import METHODS, FitConfig

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")
    # Font manager debug spam is never useful; CmdStan chatter only with --verbose.
    for noisy in ["matplotlib", "matplotlib.font_manager"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("cmdstanpy").setLevel(logging.INFO if verbose else logging.WARNING)


def _add_data_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--input-file", help="Path to a specific CSV/Parquet dump to load")
    p.add_argument("--dataset", default="hn_posts", help="Dump name under data/raw/ (without suffix)")
    p.add_argument("--simulate", type=int, metavar="N", help="Use N simulated posts instead of a dump")
    p.add_argument("--experiment", "-e", default="default", help="Experiment name (output subfolder)")
    p.add_argument("--outcome", choices=list(OUTCOME_COLUMNS), default="score")
    p.add_argument("--timezone", default="UTC", help="IANA timezone for hour/weekday (default UTC)")
    p.add_argument("--start", help="Inclusive start date (in --timezone)")
    p.add_argument("--end", help="Exclusive end date (in --timezone)")
    p.add_argument("--min-score", type=int, help="Drop posts with outcome below this value")
    p.add_argument("--include-non-stories", action="store_true", help="Keep jobs, polls, etc.")
    p.add_argument("--sample-size", type=int, help="Random subsample of posts after filtering")
    p.add_argument("--seed", type=int, default=0)
    p.add_argument("--output-dir", help="Output directory (default results/model_fitting/<experiment>)")
    p.add_argument("--usetex", action="store_true", help="Render figures with LaTeX fonts")
    p.add_argument("--verbose", action="store_true")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Estimate when to post on HackerNews with Bayesian count models (CmdStan)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = p.add_subparsers(dest="command", required=True)

    explore = sub.add_parser("explore", help="Exploratory figures and per-cell counts")
    _add_data_args(explore)

    fit = sub.add_parser("fit", help="Fit models, run LOO and write results")
    _add_data_args(fit)
    # Model config
    fit.add_argument("--models", default="simple,hierarchical", help=f"Comma-separated from {sorted(MODEL_REGISTRY)}")
    fit.add_argument("--method", choices=list(METHODS), default="nuts")
    fit.add_argument("--chains", type=int, default=4)
    fit.add_argument("--iter-warmup", type=int, default=1000)
    fit.add_argument("--iter-sampling", type=int, default=1000)
    fit.add_argument("--adapt-delta", type=float, default=0.9)
    fit.add_argument("--max-treedepth", type=int, default=10)
    fit.add_argument("--parallel-chains", type=int)
    fit.add_argument("--advi-algorithm", choices=["meanfield", "fullrank"], default="meanfield")
    fit.add_argument("--advi-iter", type=int, default=10000)
    fit.add_argument("--output-draws", type=int, default=1000, help="Approximate draws kept from ADVI")
    fit.add_argument("--opencl", action="store_true", help="Compile with STAN_OPENCL (GPU likelihood)")
    fit.add_argument("--opencl-ids", default="0,0", help="OpenCL platform,device ids")
    fit.add_argument("--force-compile", action="store_true")
    # LOO
    fit.add_argument("--loo-subsample", type=int, default=1000, help="Observations scored exactly (0 = all)")
    fit.add_argument("--loo-approximation", choices=list(APPROXIMATIONS), default="plpd")
    fit.add_argument("--no-loo", action="store_true", help="Skip PSIS-LOO")
    # Output
    fit.add_argument("--credible-mass", type=float, default=0.9)
    fit.add_argument("--top", type=int, default=5, help="Best cells to report")
    fit.add_argument("--no-figures", action="store_true")
    fit.add_argument("--no-draws", action="store_true", help="Do not store draws_*.npz")
    return p


def _parse_list(arg: Optional[str]) -> List[str]:
    return [s.strip() for s in arg.split(",") if s.strip()] if arg else []


def _parse_opencl_ids(arg: str) -> Tuple[int, int]:
    parts = _parse_list(arg)
    if len(parts) != 2:
        raise ValueError(f"--opencl-ids expects 'platform,device', got '{arg}'")
    return int(parts[0]), int(parts[1])


def _processing_config(args) -> PostProcessingConfig:
    return PostProcessingConfig(
        timezone=args.timezone,
        outcome=args.outcome,
        story_only=not args.include_non_stories,
        min_score=args.min_score,
        start=args.start,
        end=args.end,
        sample_size=args.sample_size,
        seed=args.seed,
    )


def _load_processed(args, paths: PathManager, config: PostProcessingConfig) -> pd.DataFrame:
    if args.simulate:
        raw = simulate_posts(n=args.simulate, seed=args.seed)
        logger.info(f"Simulated {len(raw)} posts")
    else:
        source = resolve_posts_path(paths, dataset=args.dataset, input_file=args.input_file)
        logger.info(f"Loading posts from {source}")
        raw = load_posts(source)
    validate_or_raise(PostDataValidator(outcome=config.outcome), raw)
    df = PostProcessor(config).process(raw)
    if df.empty:
        raise ValueError("No posts left after filtering; relax --start/--end/--min-score.")
    return df


def _output_dir(args, paths: PathManager) -> Path:
    if args.output_dir:
        return Path(args.output_dir)
    return paths.get_model_fitting_path(args.experiment)


def _fit_configs(args) -> dict:
    models = _parse_list(args.models)
    unknown = [m for m in models if m not in MODEL_REGISTRY]
    if not models or unknown:
        raise ValueError(f"Unknown model(s) {unknown or models}. Available: {sorted(MODEL_REGISTRY)}")
    opencl_ids = _parse_opencl_ids(args.opencl_ids)
    return {
        name: FitConfig(
            method=args.method,
            chains=args.chains,
            iter_warmup=args.iter_warmup,
            iter_sampling=args.iter_sampling,
            adapt_delta=args.adapt_delta,
            max_treedepth=args.max_treedepth,
            parallel_chains=args.parallel_chains,
            advi_algorithm=args.advi_algorithm,
            advi_iter=args.advi_iter,
            output_draws=args.output_draws,
            seed=args.seed,
            opencl=args.opencl,
            opencl_ids=opencl_ids,
            force_compile=args.force_compile,
        )
        for name in models
    }


def _loo_spec(args) -> LooSpec:
    return LooSpec(
        enabled=not args.no_loo,
        n_subsample=args.loo_subsample or None,
        approximation=args.loo_approximation,
        seed=args.seed,
    )


def main(argv: Optional[list] = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    paths = PathManager()
    output_dir = _output_dir(args, paths)
    try:
        config = _processing_config(args)
        if args.command == "fit":
            fit_configs = _fit_configs(args)
            loo_spec = _loo_spec(args)
            if not 0.0 < args.credible_mass < 1.0:
                raise ValueError(f"--credible-mass must be in (0, 1), got {args.credible_mass}")
        df = _load_processed(args, paths, config)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    apply_paper_style(usetex=args.usetex)

    if args.command == "explore":
        written = explore_posts(df, output_dir / "explore", outcome_label=config.outcome, timezone=config.timezone)
        logger.info(f"Wrote {len(written)} exploration files to {output_dir / 'explore'}")
        return 0

    result = run_analysis(
        df,
        fit_configs,
        output_dir,
        build_dir=paths.get_stan_build_dir(),
        processing_config=config,
        loo_spec=loo_spec,
        credible_mass=args.credible_mass,
        top=args.top,
        make_figures=not args.no_figures,
        save_draws=not args.no_draws,
        provenance={"experiment": args.experiment, "source": "simulated" if args.simulate else (args.input_file or args.dataset)},
    )
    bad = [r["model"] for r in result.records if not r["diagnostics"]["ok"]]
    if bad:
        logger.warning(f"Diagnostics flagged problems for: {', '.join(bad)}; see the fit JSON warnings")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
