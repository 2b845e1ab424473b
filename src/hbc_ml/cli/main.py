"""
`hbc` command group.

Stages, in pipeline order:
  hbc clean         raw bookings CSV -> cleaned.csv
  hbc prepare       train/test split, CV folds, fitted recipe
  hbc tune          cross-validated search and refit per model family
  hbc evaluate      test-set predictions and comparison.csv
  hbc explain       importance tables and Shapley values for a tree model
  hbc run-pipeline  every stage above in one call
"""

import click

from hbc_ml import __version__
from hbc_ml.data.schema import VALID_MODELS


def config_options(f):
    """--config, --outdir and --override, shared by every stage."""
    f = click.option(
        "--override",
        multiple=True,
        help="Override a config value, e.g. cv.folds=10 (repeatable)",
    )(f)
    f = click.option(
        "--outdir",
        type=click.Path(),
        default=None,
        help="Artifact directory (default: results/)",
    )(f)
    return click.option(
        "--config",
        "-c",
        type=click.Path(exists=True),
        help="YAML configuration file",
    )(f)


def models_option(action: str):
    return click.option(
        "--models",
        "-m",
        multiple=True,
        type=click.Choice(VALID_MODELS),
        help=f"Model families to {action} (repeatable; default: config models)",
    )


infile_option = click.option(
    "--infile",
    type=click.Path(exists=True),
    default=None,
    help="Raw hotel-bookings CSV",
)


def _dispatch(ctx, runner, config, kwargs):
    overrides = list(kwargs.pop("override", ()))
    cli_args = dict(kwargs, log_file=ctx.obj.get("log_file"))
    return runner(
        config_file=config,
        cli_args=cli_args,
        overrides=overrides,
        verbose=ctx.obj.get("verbose", 0),
    )


@click.group()
@click.version_option(version=__version__, prog_name="hbc")
@click.option("--verbose", "-v", count=True, help="More log output (-v for DEBUG)")
@click.option("--log-file", type=click.Path(), default=None, help="Also append logs to this file")
@click.pass_context
def cli(ctx, verbose, log_file):
    """
    HBC-ML: Hotel Booking Cancellation modeling pipeline

    Tunes and compares five classifier families with repeated stratified
    cross-validation on a shared preprocessing recipe, then explains the
    selected tree model.
    """
    from hbc_ml.utils.random import apply_seed_global

    ctx.ensure_object(dict)
    ctx.obj.update(verbose=verbose, log_file=log_file)

    seed = apply_seed_global()
    if seed is not None:
        ctx.obj["seed_global"] = seed


@cli.command("clean")
@config_options
@infile_option
@click.pass_context
def clean(ctx, config, **kwargs):
    """Clean the raw bookings file into cleaned.csv."""
    from hbc_ml.cli.clean import run_clean

    _dispatch(ctx, run_clean, config, kwargs)


@cli.command("prepare")
@config_options
@click.pass_context
def prepare(ctx, config, **kwargs):
    """Split train/test, build CV folds and fit the recipe."""
    from hbc_ml.cli.prepare import run_prepare

    _dispatch(ctx, run_prepare, config, kwargs)


@cli.command("tune")
@config_options
@models_option("tune")
@click.pass_context
def tune(ctx, config, **kwargs):
    """Run the cross-validated search and refit for each model family."""
    from hbc_ml.cli.tune import run_tune

    _dispatch(ctx, run_tune, config, kwargs)


@cli.command("evaluate")
@config_options
@models_option("evaluate")
@click.pass_context
def evaluate(ctx, config, **kwargs):
    """Score tuned models on the test set and write comparison.csv."""
    from hbc_ml.cli.evaluate import run_evaluate

    _dispatch(ctx, run_evaluate, config, kwargs)


@cli.command("explain")
@config_options
@click.option(
    "--model",
    "explain_model",
    type=click.Choice(VALID_MODELS),
    default=None,
    help="Tree model to explain (default: explain.model)",
)
@click.pass_context
def explain(ctx, config, explain_model, **kwargs):
    """Permutation/impurity importance and Shapley values for a tree model."""
    from hbc_ml.cli.explain import run_explain

    if explain_model is not None:
        kwargs["override"] = (*kwargs.get("override", ()), f"explain.model={explain_model}")
    _dispatch(ctx, run_explain, config, kwargs)


@cli.command("run-pipeline")
@config_options
@infile_option
@models_option("tune and evaluate")
@click.pass_context
def run_pipeline_cmd(ctx, config, **kwargs):
    """Run clean, prepare, tune, evaluate and explain in sequence."""
    from hbc_ml.cli.run_pipeline import run_pipeline

    _dispatch(ctx, run_pipeline, config, kwargs)


if __name__ == "__main__":
    cli()
