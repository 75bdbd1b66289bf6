import click

from pathlib import Path

from gocdpipe import settings
from gocdpipe.exception import CLIException, PipelineFormatError
from gocdpipe.utils import async_click
from gocdpipe.core.core import GocdPipeCore
from gocdpipe.core.gating import can_schedule
from gocdpipe.core.services.builders.pipeline import find_pipeline, summarize_pipeline
from gocdpipe.core.services.validator import RELAY_STAGE_ORDER


def _fail(error: CLIException) -> click.ClickException:
    for line in getattr(error, "logs", []):
        click.echo(line, err=True)
    return click.ClickException(error.description)


def _select_pipeline(document, name):
    try:
        return find_pipeline(document, name)
    except KeyError as e:
        raise click.ClickException(f"Pipeline not found: {e.args[0]}")


@click.group()
@click.version_option(package_name="gocdpipe")
def main():
    """Сборка и проверка GoCD-пайплайнов (gocd-yaml-config-plugin)."""


@main.command()
@click.option("-o", "--output", default=settings.OUTPUT_DIR, help="Путь к директории, куда сохранить результат")
@click.option("--stdout/--no-stdout", default=True, help="Печатать YAML в stdout")
def render(output: str, stdout: bool):
    """Собрать пайплайн deploy-relay-experimental и записать YAML."""
    click.echo(settings.LOGO + "\n", err=True)

    result = GocdPipeCore().render()
    for warning in result.warnings:
        click.echo(f"WARNING: {warning}", err=True)
    if result.status != "ok":
        for line in result.logs:
            click.echo(line, err=True)
        raise click.ClickException("Pipeline did not pass validation")

    if stdout:
        click.echo(result.template, nl=False)

    target = Path(output) / settings.PIPELINE_FILENAME
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(result.template, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Не удалось записать файл {target}: {e}")

    click.echo(f"Файл сохранён: {target}", err=True)
    click.echo(result.pipeline_summary.description, err=True)


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option(
    "--expect-stages",
    default=None,
    help="Ожидаемый порядок стадий через запятую; 'relay' - checks,deploy-experimental",
)
def validate(file: str, expect_stages: str):
    """Проверить файл пайплайна. Код выхода 1, если есть ошибки."""
    expected = None
    if expect_stages == "relay":
        expected = RELAY_STAGE_ORDER
    elif expect_stages:
        expected = [name.strip() for name in expect_stages.split(",") if name.strip()]

    try:
        _, report = GocdPipeCore().check(file, expected_stage_order=expected)
    except PipelineFormatError as e:
        raise _fail(e)

    for issue in report.issues:
        click.echo(f"{issue.level.upper():7} {issue.code:28} {issue.path}: {issue.message}")

    if not report.ok:
        click.get_current_context().exit(1)
    click.echo("OK")


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("-p", "--pipeline", "pipeline_name", default=None, help="Имя пайплайна в файле")
def summary(file: str, pipeline_name: str):
    """Стадии и задачи пайплайна."""
    try:
        document, _ = GocdPipeCore().check(file)
    except PipelineFormatError as e:
        raise _fail(e)

    pipeline = _select_pipeline(document, pipeline_name)
    result = summarize_pipeline(pipeline)
    click.echo(result.description)
    for stage in pipeline.stages:
        click.echo(f"- {stage.name} [{stage.approval.type.value}]")
        for job in stage.jobs:
            click.echo(f"    {job.name} (timeout={job.timeout}, profile={job.elastic_profile_id})")


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("-p", "--pipeline", "pipeline_name", default=None, help="Имя пайплайна в файле")
@click.option("--revision", default=None, help="Ревизия материала")
@click.option("--repo", "repo_path", default=None, type=click.Path(file_okay=False), help="Взять ревизию HEAD из локального клона")
@click.option("--clone", is_flag=True, help="Склонировать материал (shallow) и взять его ревизию")
@async_click
async def preview(file: str, pipeline_name: str, revision: str, repo_path: str, clone: bool):
    """Показать скрипты task'ов с подставленной ревизией материала."""
    if not (revision or repo_path or clone):
        raise click.UsageError("Укажите --revision, --repo или --clone")

    core = GocdPipeCore()
    try:
        result = await core.preview(
            file,
            pipeline_name=pipeline_name,
            revision=revision,
            repo_path=repo_path,
            clone=clone,
        )
    except CLIException as e:
        raise _fail(e)
    except KeyError as e:
        raise click.ClickException(f"Pipeline not found: {e.args[0]}")

    for material, value in result.revisions.items():
        click.echo(f"# {material}: {value}")
    for task in result.tasks:
        click.echo(f"## {task.stage} / {task.job} / task {task.index}")
        click.echo(task.script.rstrip("\n"))


@main.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("-p", "--pipeline", "pipeline_name", default=None, help="Имя пайплайна в файле")
@click.option("--approve", multiple=True, help="Стадия, подтверждённая вручную")
@click.option("--fail", "failures", multiple=True, help="Стадия, которая упадёт")
@click.option("--running", is_flag=True, help="Предыдущий запуск ещё идёт")
@click.option("--last-failed", is_flag=True, help="Предыдущий запуск упал")
def plan(file: str, pipeline_name: str, approve, failures, running: bool, last_failed: bool):
    """Смоделировать, какие стадии запустит GoCD."""
    core = GocdPipeCore()
    try:
        document, _ = core.check(file)
    except PipelineFormatError as e:
        raise _fail(e)

    pipeline = _select_pipeline(document, pipeline_name)
    lock = pipeline.lock_behavior.value if pipeline.lock_behavior else "none"
    if not can_schedule(pipeline.lock_behavior, running, last_failed):
        click.echo(f"{pipeline.name}: новый запуск ждёт снятия блокировки ({lock})")
        return

    for run in core.plan(pipeline, approvals=approve, failures=failures):
        line = f"{run.stage:24} {run.status}"
        if run.reason:
            line += f" ({run.reason})"
        click.echo(line)


if __name__ == "__main__":
    main()
