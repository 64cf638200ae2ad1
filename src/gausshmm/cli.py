"""CLI entry point for gausshmm."""

import logging
import os

# Allocate on demand instead of pre-allocating most of the accelerator memory.
os.environ.setdefault("XLA_PYTHON_CLIENT_PREALLOCATE", "false")

import click
from pathlib import Path


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@click.group()
def main():
    """gausshmm: Baum-Welch estimation for Gaussian hidden Markov models."""
    pass


@main.command()
@click.option("--obs", "obs_path", type=click.Path(exists=True), required=True,
              help="Observations (.npy, or text with whitespace-separated values).")
@click.option("--params-file", type=click.Path(exists=True), default=None,
              help="Initial parameters (.npz). Defaults to the built-in 2-state guess.")
@click.option("--max-iter", type=int, default=100, help="Number of EM iterations.")
@click.option("--tol", type=float, default=None,
              help="Stop early on relative log-likelihood change below this value.")
@click.option("--variance-mode", type=click.Choice(["previous_mean", "updated_mean"]),
              default="previous_mean",
              help="Centre the variance update on the previous or the updated mean.")
@click.option("--output", type=click.Path(), default="params.npz",
              help="Where to write the learned parameters.")
@click.option("--verbose", is_flag=True, help="Debug logging.")
def fit(obs_path, params_file, max_iter, tol, variance_mode, output, verbose):
    """Estimate HMM parameters from an observation sequence."""
    from gausshmm.config import EMConfig
    from gausshmm.errors import HMMError
    from gausshmm.hmm.baum_welch import run_em
    from gausshmm.io.observations import load_observations
    from gausshmm.io.params import load_theta, save_theta

    _setup_logging(verbose)

    config = EMConfig(max_iter=max_iter, tol=tol, variance_mode=variance_mode)
    obs = load_observations(Path(obs_path))
    theta = load_theta(Path(params_file)) if params_file else None

    try:
        result = run_em(obs, theta, config)
    except HMMError as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}") from exc

    save_theta(result.theta, Path(output))
    status = "converged" if result.converged else "finished"
    click.echo(
        f"EM {status} after {result.n_iter} iterations, "
        f"log-likelihood {float(result.log_likelihoods[-1]):.4f}"
    )
    click.echo(f"Parameters saved to {output}")


@main.command()
@click.option("--n-obs", type=int, default=200, help="Sequence length.")
@click.option("--seed", type=int, default=0, help="Random seed.")
@click.option("--params-file", type=click.Path(exists=True), default=None,
              help="Generating parameters (.npz). Defaults to the built-in 2-state model.")
@click.option("--output", type=click.Path(), default="obs.npy",
              help="Where to write the observations (.npy or text).")
@click.option("--states-output", type=click.Path(), default=None,
              help="Optionally write the hidden state path as well.")
def simulate(n_obs, seed, params_file, output, states_output):
    """Draw a synthetic observation sequence from an HMM."""
    import numpy as np

    from gausshmm.config import SimulationConfig
    from gausshmm.hmm.baum_welch import init_params
    from gausshmm.io.observations import save_observations
    from gausshmm.io.params import load_theta
    from gausshmm.simulate import simulate as simulate_sequence
    config = SimulationConfig(n_obs=n_obs, seed=seed)
    if params_file:
        theta = load_theta(Path(params_file))
    else:
        theta = init_params()

    try:
        obs, states = simulate_sequence(theta, config.n_obs, seed=config.seed)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--n-obs") from exc

    save_observations(obs, Path(output))
    if states_output:
        np.save(Path(states_output), states)
    click.echo(f"Simulated {config.n_obs} observations to {output}")


@main.command()
@click.option("--params-file", type=click.Path(exists=True), required=True,
              help="Path to learned parameters file.")
def inspect_params(params_file):
    """Inspect learned HMM parameters."""
    import numpy as np

    from gausshmm.io.params import load_theta

    theta = load_theta(Path(params_file))
    click.echo("=== Learned HMM Parameters ===\n")

    click.echo("Initial state probabilities:")
    init = np.exp(np.asarray(theta.log_init))
    for i, p in enumerate(init):
        click.echo(f"  State {i}: {p:.4f}")

    click.echo("\nTransition matrix:")
    trans = np.exp(np.asarray(theta.log_trans))
    click.echo(f"  {trans}")

    click.echo("\nEmission parameters:")
    click.echo(f"  mean:   {np.asarray(theta.mean)}")
    click.echo(f"  stddev: {np.asarray(theta.stddev)}")


if __name__ == "__main__":
    main()
