from __future__ import annotations

import re

from typing import Dict, List, Mapping

from gocdpipe.model import ExecTask, Job, Pipeline, ScriptTask, Stage
from .models import RenderedTask

_REFERENCE = re.compile(
    r"\$(?:\$|\{(?P<braced>[A-Za-z_][A-Za-z0-9_]*)\}|(?P<named>[A-Za-z_][A-Za-z0-9_]*))"
)


def engine_variables(
    pipeline: Pipeline,
    revisions: Mapping[str, str],
    stage: Stage | None = None,
    job: Job | None = None,
) -> Dict[str, str]:
    """
    Переменные, которые GoCD добавляет сам: имя пайплайна/стадии/job'а
    и GO_REVISION_<МАТЕРИАЛ> для каждого материала, чья ревизия известна.

    revisions - {имя материала: ревизия}
    """
    env = {"GO_PIPELINE_NAME": pipeline.name}
    if stage is not None:
        env["GO_STAGE_NAME"] = stage.name
    if job is not None:
        env["GO_JOB_NAME"] = job.name

    for material in pipeline.materials:
        revision = revisions.get(material.name)
        if revision:
            env[material.revision_variable] = revision
    return env


def job_environment(
    pipeline: Pipeline,
    stage: Stage,
    job: Job,
    revisions: Mapping[str, str],
) -> Dict[str, str]:
    """
    Окружение job'а в порядке приоритета GoCD: пайплайн < стадия < job,
    а переменные движка перекрывают всё.
    """
    env: Dict[str, str] = {}
    env.update(pipeline.environment_variables)
    env.update(stage.environment_variables)
    env.update(job.environment_variables)
    env.update(job.secure_variables)
    env.update(engine_variables(pipeline, revisions, stage, job))
    return env


def interpolate(script: str, env: Mapping[str, str]) -> str:
    """
    Подставляет $VAR и ${VAR}. Неизвестные переменные остаются как есть,
    ссылки {{SECRET:...}} никогда не раскрываются - их значение знает только GoCD.
    $$ (PID в shell) тоже остаётся как есть.
    """

    def replace(match: re.Match) -> str:
        name = match.group("braced") or match.group("named")
        if name is None or name not in env:
            return match.group(0)
        return env[name]

    return _REFERENCE.sub(replace, script)


def task_text(task) -> str:
    if isinstance(task, ScriptTask):
        return task.script
    if isinstance(task, ExecTask):
        return " ".join([task.command, *task.arguments])
    raise TypeError(f"Unsupported task {type(task).__name__}")


def render_tasks(pipeline: Pipeline, revisions: Mapping[str, str]) -> List[RenderedTask]:
    rendered: List[RenderedTask] = []
    for stage in pipeline.stages:
        for job in stage.jobs:
            env = job_environment(pipeline, stage, job, revisions)
            for index, task in enumerate(job.tasks):
                rendered.append(
                    RenderedTask(
                        stage=stage.name,
                        job=job.name,
                        index=index,
                        script=interpolate(task_text(task), env),
                    )
                )
    return rendered
