from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path

import click

from energy_model.compiler.compile import compile_elements, count_by_concept
from energy_model.compiler.inclusion import check_duplicates
from energy_model.config import load_app_config
from energy_model.dataset.keys import DataElement
from energy_model.dataset.loader import load_datasets
from energy_model.dataset.validation import find_missing_references, validate_references
from energy_model.models.config import AppConfig
from energy_model.problem import PulpProblem
from energy_model.problem.simulation import RollingHorizonSimulator
from energy_model.time.probtime import TwoTime

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _common_options(func: click.Command) -> click.Command:
    func = click.option(
        "--config",
        type=click.Path(path_type=Path, dir_okay=False),
        default=Path("config.yaml"),
        show_default=True,
        help="Path to YAML config.",
    )(func)
    func = click.option(
        "--log-level",
        type=click.Choice(LOG_LEVELS, case_sensitive=False),
        default="INFO",
        show_default=True,
        help="Logging level.",
    )(func)
    return func


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@_common_options
@click.pass_context
def cli(ctx: click.Context, config: Path, log_level: str) -> None:
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["log_level"] = log_level


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Report duplicate elements and references to missing elements."""
    app_config, elements = _load(ctx)
    try:
        check_duplicates(elements)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    missing = find_missing_references(elements)
    for problem in missing:
        click.echo(str(problem))
    if missing:
        raise click.ClickException(f"{len(missing)} missing reference(s)")
    click.echo(f"{len(elements)} data elements from {len(app_config.datasets)} dataset(s) look consistent")


@cli.command("compile")
@click.option("--deps/--no-deps", default=False, help="Include the dependency index map.")
@click.pass_context
def compile_command(ctx: click.Context, deps: bool) -> None:
    """Compile the datasets and print a summary of the top-level objects."""
    app_config, elements = _load(ctx)
    try:
        if app_config.compile.validate_references:
            validate_references(elements)
        if deps:
            objects, dependencies = compile_elements(
                elements,
                validate=app_config.compile.validate_graph,
                deps=True,
            )
        else:
            objects = compile_elements(elements, validate=app_config.compile.validate_graph)
            dependencies = None
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    summary: dict[str, object] = {
        "elements": len(elements),
        "objects": sorted(str(object_id) for object_id in objects),
        "concepts": count_by_concept(objects),
    }
    if dependencies is not None:
        summary["dependencies"] = {str(index): found for index, found in dependencies.items()}
    click.echo(json.dumps(summary, indent=2))


@cli.command()
@click.option("--steps", type=click.IntRange(min=1), default=None, help="Override the configured step count.")
@click.pass_context
def simulate(ctx: click.Context, steps: int | None) -> None:
    """Compile the datasets, then solve a rolling horizon."""
    app_config, elements = _load(ctx)
    simulation = app_config.simulation
    solver = app_config.solver
    try:
        if app_config.compile.validate_references:
            validate_references(elements)
        objects = compile_elements(elements, validate=app_config.compile.validate_graph)
        problem = PulpProblem(
            objects,
            msg=solver.msg,
            time_limit_seconds=solver.time_limit_seconds,
        )
        problem.set_warmstart(solver.warmstart)
        start = TwoTime(simulation.start, simulation.scenario_start or simulation.start)
        simulator = RollingHorizonSimulator(
            problem,
            start,
            timedelta(hours=simulation.step_hours),
            steps or simulation.steps,
        )
        results = simulator.run()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(json.dumps([result.model_dump(mode="json") for result in results], indent=2))


def _load(ctx: click.Context) -> tuple[AppConfig, list[DataElement]]:
    ctx.ensure_object(dict)
    _configure_logging(ctx.obj["log_level"])
    try:
        app_config = load_app_config(ctx.obj["config"])
        elements = load_datasets(app_config.datasets)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    return app_config, elements


def _parse_log_level(level_str: str) -> int:
    normalized = level_str.strip().upper()
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    if normalized in mapping:
        return mapping[normalized]
    raise ValueError(f"Invalid log level: {level_str}")


def _configure_logging(level_str: str) -> None:
    log_level = _parse_log_level(level_str)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("energy_model").setLevel(log_level)


if __name__ == "__main__":
    cli()
