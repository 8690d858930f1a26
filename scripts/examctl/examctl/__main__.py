"""
Exam Portal Admin CLI - examctl
Python Click-based tool for managing the question pool and reviewing results.
"""

import json
import time
from typing import Any, Dict, List, Optional

import click
import requests


# ============================================
# CLI Configuration
# ============================================

class Context:
    """CLI context for global settings."""

    def __init__(self):
        self.api_url: str = "http://localhost:8000"
        self.token: Optional[str] = None
        self.output_format: str = "table"
        self.quiet: bool = False


pass_context = click.make_pass_decorator(Context, ensure=True)


def setup_api_client(ctx: Context) -> requests.Session:
    """Create API client with auth headers."""
    session = requests.Session()
    session.headers.update({"Content-Type": "application/json"})
    if ctx.token:
        session.headers.update({"Authorization": f"Bearer {ctx.token}"})
    return session


def api_error(e: requests.RequestException) -> click.ClickException:
    """Turn an HTTP failure into a CLI error carrying the server's detail."""
    response = getattr(e, "response", None)
    if response is not None:
        try:
            body = response.json()
            return click.ClickException(
                f"{body.get('error', response.status_code)}: {body.get('detail', '')}"
            )
        except ValueError:
            pass
    return click.ClickException(str(e))


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def load_questions(path: str) -> List[Dict[str, Any]]:
    """
    Read questions from a JSON file.

    The file holds either a list of questions or ``{"questions": [...]}``.
    Each question has ``question``, ``options`` (``text``/``is_correct``),
    and optional ``category`` and ``difficulty``.
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)

    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise click.ClickException("Question file must contain a list of questions")
    return data


# ============================================
# Base Commands
# ============================================

@click.group()
@click.option(
    "--api-url",
    default="http://localhost:8000",
    help="API URL for the exam portal",
    envvar="EXAM_PORTAL_API_URL",
)
@click.option(
    "--token",
    help="Bearer token for authentication",
    envvar="EXAM_PORTAL_TOKEN",
)
@click.option(
    "--output",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.option(
    "--quiet",
    is_flag=True,
    help="Suppress output except errors",
)
@click.pass_context
def cli(
    ctx: click.Context,
    api_url: str,
    token: Optional[str],
    output: str,
    quiet: bool,
):
    """Exam Portal Admin CLI"""
    ctx.ensure_object(Context)
    ctx.obj.api_url = api_url.rstrip("/")
    ctx.obj.token = token
    ctx.obj.output_format = output
    ctx.obj.quiet = quiet


# ============================================
# Question Pool Commands
# ============================================

@cli.group()
def questions():
    """Question pool commands"""
    pass


@questions.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--stop-on-error", is_flag=True, help="Abort at the first rejected question")
@pass_context
def questions_import(ctx: Context, path: str, stop_on_error: bool):
    """Add every question in a JSON file to the pool"""
    session = setup_api_client(ctx)
    created, failed = 0, 0

    for number, question in enumerate(load_questions(path), start=1):
        try:
            response = session.post(f"{ctx.api_url}/api/v1/exam/questions", json=question)
            response.raise_for_status()
            created += 1
            if ctx.output_format == "json" and not ctx.quiet:
                echo_json(response.json())
        except requests.RequestException as e:
            failed += 1
            click.echo(f"Question {number}: {api_error(e).message}", err=True)
            if stop_on_error:
                break

    if not ctx.quiet:
        click.echo(f"Imported {created} question(s), {failed} failed")
    if failed:
        raise SystemExit(1)


@questions.command("delete")
@click.argument("question_id")
@click.option("--force", is_flag=True, help="Skip confirmation")
@pass_context
def questions_delete(ctx: Context, question_id: str, force: bool):
    """Delete a question from the pool"""
    if not force:
        if not click.confirm(f"Delete question {question_id}?"):
            return

    session = setup_api_client(ctx)

    try:
        response = session.delete(f"{ctx.api_url}/api/v1/exam/questions/{question_id}")
        response.raise_for_status()
    except requests.RequestException as e:
        raise api_error(e) from e

    if not ctx.quiet:
        click.echo(f"Question {question_id} deleted")


# ============================================
# Exam Result Commands
# ============================================

@cli.group()
def exam():
    """Exam result commands"""
    pass


@exam.command("history")
@pass_context
def exam_history(ctx: Context):
    """List your most recent attempts"""
    session = setup_api_client(ctx)

    try:
        response = session.get(f"{ctx.api_url}/api/v1/exam/history")
        response.raise_for_status()
        results = response.json().get("results", [])
    except requests.RequestException as e:
        raise api_error(e) from e

    if ctx.output_format == "json":
        echo_json(results)
        return

    click.echo(f"{'ID':<38} {'Score':<9} {'%':<5} {'Grade':<6} {'Time':<7} {'Completed'}")
    click.echo("-" * 95)
    for result in results:
        click.echo(
            f"{result.get('id', ''):<38} "
            f"{str(result.get('score')) + '/' + str(result.get('total_questions')):<9} "
            f"{result.get('percentage', 0):<5} "
            f"{result.get('grade', ''):<6} "
            f"{str(result.get('time_spent', 0)) + 's':<7} "
            f"{result.get('completed_at', '')}"
        )


@exam.command("result")
@click.argument("attempt_id")
@pass_context
def exam_result(ctx: Context, attempt_id: str):
    """Show the detailed review of an attempt"""
    session = setup_api_client(ctx)

    try:
        response = session.get(f"{ctx.api_url}/api/v1/exam/result/{attempt_id}")
        response.raise_for_status()
        result = response.json()["result"]
    except requests.RequestException as e:
        raise api_error(e) from e

    if ctx.output_format == "json":
        echo_json(result)
        return

    click.echo(
        f"Score: {result['score']}/{result['total_questions']} "
        f"({result['percentage']}%) - Grade: {result['grade']}"
    )
    click.echo("=" * 50)
    for number, question in enumerate(result.get("questions", []), start=1):
        if question.get("question_missing"):
            click.echo(f"\n{number}. [question no longer available]")
            continue
        mark = "correct" if question["is_correct"] else "wrong"
        click.echo(f"\n{number}. {question['question']} ({mark})")
        for index, text in enumerate(question["options"]):
            flags = []
            if index == question["selected_option"]:
                flags.append("your answer")
            if index == question["correct_option"]:
                flags.append("correct answer")
            suffix = f"  <- {', '.join(flags)}" if flags else ""
            click.echo(f"   {chr(ord('A') + index)}. {text}{suffix}")


# ============================================
# System Commands
# ============================================

@cli.command("health")
@click.option("--wait", is_flag=True, help="Wait for ready status")
@click.option("--timeout", default=60, help="Seconds to wait with --wait")
@pass_context
def health(ctx: Context, wait: bool, timeout: int):
    """Check API readiness"""
    session = setup_api_client(ctx)
    deadline = time.monotonic() + timeout

    while True:
        try:
            response = session.get(f"{ctx.api_url}/api/v1/health/ready")
            status = response.json().get("status", "unknown")
        except (requests.RequestException, ValueError):
            status = "unreachable"

        if status == "ready" or not wait or time.monotonic() >= deadline:
            break
        time.sleep(2)

    if ctx.output_format == "json":
        echo_json({"status": status})
    else:
        click.echo(f"API status: {status}")

    if status != "ready":
        raise SystemExit(1)


# ============================================
# Main Entry Point
# ============================================

if __name__ == "__main__":
    cli()
