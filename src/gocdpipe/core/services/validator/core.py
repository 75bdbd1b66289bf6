from __future__ import annotations

import click
import re

from typing import Iterable, List, Mapping, Optional, Sequence

from gocdpipe.core.config import SUPPORTED_FORMAT_VERSIONS
from gocdpipe.core.interpolation import task_text
from gocdpipe.core.models import ValidationIssue, ValidationReport
from gocdpipe.core.secrets import (
    find_malformed_secret_references,
    looks_like_plaintext_secret,
)
from gocdpipe.model import ApprovalType, Job, Pipeline, PipelineFile, Stage


RELAY_STAGE_ORDER = ["checks", "deploy-experimental"]

VARIABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
REVISION_REFERENCE = re.compile(r"\$\{?(GO_REVISION_[A-Z0-9_]+)\}?")


class _Collector:
    """
    Копит замечания и параллельно пишет их в логи.
    """

    def __init__(self) -> None:
        self.report = ValidationReport()

    def error(self, code: str, path: str, message: str) -> None:
        self._add("error", code, path, message)

    def warning(self, code: str, path: str, message: str) -> None:
        self._add("warning", code, path, message)

    def _add(self, level, code, path, message) -> None:
        self.report.issues.append(
            ValidationIssue(level=level, code=code, path=path, message=message)
        )
        self.report.logs.append(f"[{level}] {path}: {message}")


def _duplicates(names: Iterable[str]) -> List[str]:
    seen = set()
    dups = []
    for name in names:
        if name in seen and name not in dups:
            dups.append(name)
        seen.add(name)
    return dups


def _check_variables(
    variables: Mapping[str, str],
    path: str,
    issues: _Collector,
    secure: bool = False,
) -> None:
    """
    secure - значения из secure_variables: GoCD хранит их зашифрованными
             (AES:...), поэтому проверка на открытый текст к ним не относится.
    """
    for name, value in variables.items():
        where = f"{path}.{name}"
        if not VARIABLE_NAME.match(name):
            issues.error("invalid-variable-name", where, f"Недопустимое имя переменной {name!r}.")
        if name.startswith("GO_"):
            issues.error(
                "engine-variable",
                where,
                f"{name} задаёт сам GoCD (переменные GO_* только для чтения).",
            )
        for fragment in find_malformed_secret_references(value):
            issues.error(
                "malformed-secret",
                where,
                f"Некорректная ссылка на секрет {fragment!r}, ожидается {{{{SECRET:[store][key]}}}}.",
            )
        if not secure and looks_like_plaintext_secret(name, value):
            issues.error(
                "plaintext-secret",
                where,
                f"{name} похож на секрет, но записан открытым текстом. Используйте {{{{SECRET:[store][key]}}}}.",
            )


def _shadowed(issues: _Collector, path: str, name: str, owner: str) -> None:
    issues.warning(
        "shadowed-variable",
        path,
        f"Переменная {name} перекрывает одноимённую переменную {owner}.",
    )


def _check_job(
    pipeline: Pipeline,
    stage: Stage,
    job: Job,
    path: str,
    revision_variables: Sequence[str],
    issues: _Collector,
) -> None:
    if job.timeout is None:
        issues.error("timeout-missing", path, f"Job {job.name} не задаёт timeout.")
    elif job.timeout <= 0:
        issues.error(
            "timeout-not-positive",
            path,
            f"Job {job.name}: timeout должен быть положительным, сейчас {job.timeout}.",
        )

    if not job.elastic_profile_id and not job.resources:
        issues.warning(
            "no-agent",
            path,
            f"Job {job.name} не указывает ни elastic_profile_id, ни resources.",
        )

    _check_variables(job.environment_variables, f"{path}.environment_variables", issues)
    _check_variables(job.secure_variables, f"{path}.secure_variables", issues, secure=True)

    for name in job.environment_variables:
        if name in stage.environment_variables:
            _shadowed(issues, f"{path}.environment_variables.{name}", name, "стадии")
        elif name in pipeline.environment_variables:
            _shadowed(issues, f"{path}.environment_variables.{name}", name, "пайплайна")

    if not job.tasks:
        issues.error("job-without-tasks", path, f"Job {job.name} не содержит task'ов.")

    for index, task in enumerate(job.tasks):
        text = task_text(task)
        for variable in REVISION_REFERENCE.findall(text):
            if variable not in revision_variables:
                issues.error(
                    "unknown-revision-variable",
                    f"{path}.tasks[{index}]",
                    f"{variable} не соответствует ни одному материалу пайплайна.",
                )
        for fragment in find_malformed_secret_references(text):
            issues.error(
                "malformed-secret",
                f"{path}.tasks[{index}]",
                f"Некорректная ссылка на секрет {fragment!r} в скрипте.",
            )


def _check_pipeline(
    pipeline: Pipeline,
    issues: _Collector,
    expected_stage_order: Optional[Sequence[str]],
) -> None:
    path = f"pipelines.{pipeline.name}"

    if not pipeline.group:
        issues.error("missing-group", path, "Пайплайн не привязан к группе (group).")

    _check_variables(pipeline.environment_variables, f"{path}.environment_variables", issues)

    if not pipeline.materials:
        issues.error("no-materials", path, "У пайплайна нет ни одного материала.")
    for name in _duplicates(m.name for m in pipeline.materials):
        issues.error("duplicate-material", f"{path}.materials.{name}", f"Материал {name} объявлен дважды.")

    revision_variables = [material.revision_variable for material in pipeline.materials]
    for name in _duplicates(revision_variables):
        issues.error(
            "revision-variable-collision",
            f"{path}.materials",
            f"Несколько материалов дают одну и ту же переменную {name}.",
        )

    if not pipeline.stages:
        issues.error("no-stages", path, "У пайплайна нет ни одной стадии.")
    for name in _duplicates(pipeline.stage_names):
        issues.error("duplicate-stage", f"{path}.stages.{name}", f"Стадия {name} объявлена дважды.")

    if expected_stage_order is not None and pipeline.stage_names != list(expected_stage_order):
        issues.error(
            "stage-order",
            f"{path}.stages",
            f"Ожидался порядок стадий {list(expected_stage_order)}, в файле {pipeline.stage_names}.",
        )

    for index, stage in enumerate(pipeline.stages):
        stage_path = f"{path}.stages.{stage.name}"
        _check_variables(stage.environment_variables, f"{stage_path}.environment_variables", issues)
        for name in stage.environment_variables:
            if name in pipeline.environment_variables:
                _shadowed(issues, f"{stage_path}.environment_variables.{name}", name, "пайплайна")

        if (
            index > 0
            and stage.approval.type == ApprovalType.SUCCESS
            and not stage.approval.allow_only_on_success
        ):
            issues.warning(
                "success-without-guard",
                f"{stage_path}.approval",
                f"Стадия {stage.name} может быть перезапущена вручную после падения "
                f"предыдущей. Добавьте allow_only_on_success: true.",
            )

        if not stage.jobs:
            issues.error("stage-without-jobs", stage_path, f"Стадия {stage.name} не содержит job'ов.")
        for name in _duplicates(stage.job_names):
            issues.error("duplicate-job", f"{stage_path}.jobs.{name}", f"Job {name} объявлен дважды.")

        for job in stage.jobs:
            _check_job(pipeline, stage, job, f"{stage_path}.jobs.{job.name}", revision_variables, issues)


def validate_pipeline_file(
    document: PipelineFile,
    expected_stage_order: Optional[Sequence[str]] = None,
) -> ValidationReport:
    """
    Проверяет документ на правила, которые GoCD либо не проверяет сам,
    либо проверяет только на сервере:

    - поддерживаемый format_version;
    - у каждого job'а положительный timeout;
    - все ссылки на секреты вида {{SECRET:[store][key]}}, секреты не открытым текстом;
    - переменные GO_* не объявляются в файле;
    - ${GO_REVISION_*} в скриптах ссылаются на существующие материалы;
    - порядок стадий (если передан expected_stage_order).

    Возвращает ValidationReport; report.ok == False, если есть ошибки.
    """
    issues = _Collector()

    if document.format_version not in SUPPORTED_FORMAT_VERSIONS:
        issues.error(
            "unsupported-format-version",
            "format_version",
            f"format_version {document.format_version} не поддерживается "
            f"(ожидается {SUPPORTED_FORMAT_VERSIONS.start}..{SUPPORTED_FORMAT_VERSIONS.stop - 1}).",
        )

    if not document.pipelines:
        issues.error("no-pipelines", "pipelines", "Файл не объявляет ни одного пайплайна.")

    for name in _duplicates(p.name for p in document.pipelines):
        issues.error("duplicate-pipeline", f"pipelines.{name}", f"Пайплайн {name} объявлен дважды.")

    for pipeline in document.pipelines:
        _check_pipeline(pipeline, issues, expected_stage_order)

    report = issues.report
    click.echo(
        f"Проверка завершена: {len(report.errors)} ошибок, {len(report.warnings)} предупреждений.",
        err=True,
    )
    return report
