"""CLI entrypoint for jobgroups."""

import logging
from pathlib import Path

import rich_click as click

from jobgroups import __version__
from jobgroups.controllers import GroupCliController, RunGroupsCommand
from jobgroups.errors import ConfigurationError
from jobgroups.groups.group import FailureTiming

click.rich_click.USE_MARKDOWN = True


@click.group()
@click.version_option(version=__version__, prog_name="jobgroups")
@click.option("--log-level", default="WARNING", show_default=True, help="Python logging level.")
def jobgroups(log_level: str) -> None:
    """Run groups of jobs and report one lifecycle per group."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@jobgroups.command("run")
@click.option(
    "--job",
    "job_specs",
    multiple=True,
    required=True,
    help="Job as `NAME=COMMAND`. Jobs sharing NAME form one group. Can be repeated.",
)
@click.option(
    "--chain/--no-chain",
    default=False,
    show_default=True,
    help="Submit each group only after the previous group completed.",
)
@click.option(
    "--cancel-on-failure/--no-cancel-on-failure",
    default=None,
    help="Cancel all groups once any group fails. Defaults to JOBGROUPS_CANCEL_ON_FAILURE.",
)
@click.option(
    "--poll-interval",
    "poll_interval_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between job polls. Defaults to JOBGROUPS_POLL_INTERVAL_SECONDS.",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Give up and cancel after this many seconds (0 = wait forever).",
)
@click.option(
    "--failure-timing",
    type=click.Choice([member.value for member in FailureTiming]),
    default=None,
    help="Whether the first or the last job failure sets the group end time.",
)
@click.option(
    "--log-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Write per-job stdout/stderr logs under this directory.",
)
@click.option(
    "--verbose/--quiet",
    default=None,
    help="Print timestamped progress lines. Defaults to JOBGROUPS_VERBOSE.",
)
def run(  # noqa: PLR0913
    job_specs: tuple[str, ...],
    chain: bool,
    cancel_on_failure: bool | None,
    poll_interval_seconds: float | None,
    timeout_seconds: float | None,
    failure_timing: str | None,
    log_dir: Path | None,
    verbose: bool | None,
) -> None:
    """Run job groups until every group completes, fails, or is cancelled."""

    controller = GroupCliController(on_progress=click.echo)
    try:
        result = controller.run_groups(
            RunGroupsCommand(
                job_specs=job_specs,
                chain=chain,
                cancel_on_failure=cancel_on_failure,
                poll_interval_seconds=poll_interval_seconds,
                timeout_seconds=timeout_seconds,
                verbose=verbose,
                failure_timing=failure_timing,
                log_dir=log_dir,
            ),
        )
    except (ConfigurationError, ValueError) as error:
        raise click.ClickException(str(error)) from error

    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("One or more job groups did not complete.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    jobgroups()
