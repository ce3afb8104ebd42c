"""
Command-line interface for the task review pipeline.

This CLI lets operators, workers and reviewers drive the pipeline:
- Publish tasks and inspect the queues
- Claim and submit tasks
- Claim and decide reviews

State is kept in a JSON file between invocations (see ``--state``).
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .collaborators import StaticIdentity
from .config import load_config
from .errors import ConfigError, WorkflowError
from .storage import build_engine, save_state

PRINCIPAL_ENV_VAR = "REVIEW_PIPELINE_PRINCIPAL"

console = Console()
err_console = Console(stderr=True)


class PipelineContext:
    """Engine and settings shared by all commands of one invocation."""

    def __init__(self, config, identity: StaticIdentity):
        self.config = config
        self.identity = identity
        self._engine = None

    @property
    def engine(self):
        if self._engine is None:
            try:
                self._engine = build_engine(self.config, self.identity)
            except ConfigError as e:
                fail(str(e))
        return self._engine

    def commit(self) -> None:
        """Persist state and wait for any payouts in flight."""
        save_state(self.engine, self.config.state_file)
        self.close()

    def close(self) -> None:
        if self._engine is not None and self._engine.payout is not None:
            self._engine.payout.shutdown(wait=True)


def fail(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def run_operation(ctx: PipelineContext, operation, *args):
    """Run a mutating engine operation, report caller errors, save on success."""
    try:
        result = operation(*args)
    except (WorkflowError, ValueError) as e:
        ctx.close()
        fail(str(e))
    ctx.commit()
    return result


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None,
              help="YAML configuration file.")
@click.option("--state", "state_path", type=click.Path(path_type=Path), default=None,
              help="State file (overrides the configured one).")
@click.option("--as", "principal", default=None,
              help=f"Act as this principal (default: ${PRINCIPAL_ENV_VAR}).")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx, config_path: Optional[Path], state_path: Optional[Path],
        principal: Optional[str], verbose: bool):
    """Task Review Pipeline CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(config_path)
    except ConfigError as e:
        fail(str(e))

    if state_path is not None:
        config.state_file = state_path

    identity = StaticIdentity(principal or os.environ.get(PRINCIPAL_ENV_VAR))
    ctx.obj = PipelineContext(config, identity)


# === Task Commands ===

@cli.command()
@click.argument("image_url")
@click.pass_obj
def publish(ctx: PipelineContext, image_url: str):
    """Publish a new task for IMAGE_URL."""
    task_id = run_operation(ctx, ctx.engine.publish, image_url)
    console.print(f"Published task {task_id}")


@cli.command()
@click.argument("task_id", type=int)
@click.argument("worker")
@click.pass_obj
def assign(ctx: PipelineContext, task_id: int, worker: str):
    """Assign queued task TASK_ID to WORKER."""
    run_operation(ctx, ctx.engine.assign_task, task_id, worker)
    console.print(f"Task {task_id} assigned to {worker}")


@cli.command()
@click.argument("task_id", type=int)
@click.argument("descriptions", nargs=-1, required=True)
@click.pass_obj
def submit(ctx: PipelineContext, task_id: int, descriptions: tuple):
    """Submit up to four DESCRIPTIONS for TASK_ID as the current principal."""
    review_id = run_operation(ctx, ctx.engine.submit_task, task_id, list(descriptions))
    console.print(f"Task {task_id} submitted, review {review_id} opened")


# === Review Commands ===

@cli.command("assign-review")
@click.argument("review_id", type=int)
@click.argument("reviewer")
@click.pass_obj
def assign_review(ctx: PipelineContext, review_id: int, reviewer: str):
    """Assign queued review REVIEW_ID to REVIEWER."""
    run_operation(ctx, ctx.engine.assign_review_task, review_id, reviewer)
    console.print(f"Review {review_id} assigned to {reviewer}")


@cli.command()
@click.argument("review_id", type=int)
@click.option("--accept/--reject", required=True, help="Verdict on the submission.")
@click.pass_obj
def adjudicate(ctx: PipelineContext, review_id: int, accept: bool):
    """Accept or reject REVIEW_ID as the current principal."""
    future = run_operation(ctx, ctx.engine.adjudicate, review_id, accept)
    verdict = "accepted" if accept else "rejected"
    console.print(f"Review {review_id} {verdict}")

    if future is not None:
        # Pool was drained by commit(), so the outcome is known here
        if future.exception() is not None:
            err_console.print(f"[yellow]Warning:[/yellow] payout failed: {future.exception()}")
        else:
            payment = future.result()
            console.print(f"Payout {payment.id}: {payment.amount} to {payment.account}")


# === Inspection Commands ===

@cli.command("show-task")
@click.argument("task_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON.")
@click.pass_obj
def show_task(ctx: PipelineContext, task_id: int, as_json: bool):
    """Show details of TASK_ID."""
    task = ctx.engine.get_task(task_id)
    if task is None:
        ctx.close()
        fail(f"Task {task_id} not found")

    reviews = ctx.engine.reviews_for_task(task_id)
    ctx.close()

    if as_json:
        data = task.to_dict()
        data["reviews"] = [r.to_dict() for r in reviews]
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title=f"Task {task.id}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in task.to_dict().items():
        table.add_row(key, "" if value is None else escape(str(value)))
    console.print(table)

    if reviews:
        history = Table(title="Reviews")
        history.add_column("ID", justify="right")
        history.add_column("Reviewer")
        history.add_column("Status")
        history.add_column("Description")
        for review in reviews:
            history.add_row(
                str(review.id),
                review.reviewed_by or "-",
                review.status.value,
                escape(review.description),
            )
        console.print(history)


@cli.command("show-review")
@click.argument("review_id", type=int)
@click.pass_obj
def show_review(ctx: PipelineContext, review_id: int):
    """Show details of REVIEW_ID as JSON."""
    review = ctx.engine.get_review_task(review_id)
    ctx.close()
    if review is None:
        fail(f"Review {review_id} not found")
    click.echo(json.dumps(review.to_dict(), indent=2))


@cli.command()
@click.pass_obj
def queues(ctx: PipelineContext):
    """Show the task and review queues, front first."""
    task_queue = ctx.engine.task_queue_snapshot()
    review_queue = ctx.engine.review_queue_snapshot()
    ctx.close()

    table = Table(title="Queues")
    table.add_column("Queue")
    table.add_column("Length", justify="right")
    table.add_column("IDs")
    table.add_row("task", str(len(task_queue)), ", ".join(map(str, task_queue)))
    table.add_row("review", str(len(review_queue)), ", ".join(map(str, review_queue)))
    console.print(table)


@cli.command()
@click.pass_obj
def stats(ctx: PipelineContext):
    """Show pipeline statistics."""
    data = ctx.engine.statistics()
    ctx.close()

    table = Table(title="Pipeline Statistics", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Tasks", str(data["total_tasks"]))
    for status, count in data["tasks_by_status"].items():
        table.add_row(f"  {status}", str(count))
    table.add_row("Reviews", str(data["total_reviews"]))
    for status, count in data["reviews_by_status"].items():
        table.add_row(f"  {status}", str(count))
    table.add_row("Task queue", str(data["task_queue_len"]))
    table.add_row("Review queue", str(data["review_queue_len"]))
    table.add_row("Acceptance rate", f"{data['acceptance_rate']:.1f}%")
    console.print(table)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
