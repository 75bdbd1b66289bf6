from __future__ import annotations

import yaml

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import BaseModel

from gocdpipe.model import ExecTask, Job, Pipeline, PipelineFile, ScriptTask, Stage

HEADER = (
    "# More information on gocd-flavor YAML can be found here:\n"
    "# - https://github.com/tomzo/gocd-yaml-config-plugin#pipeline\n"
    "# Generated by gocdpipe, edit the builder instead of this file.\n"
)


class GocdDumper(yaml.SafeDumper):
    """
    Dumper под стиль gocd-yaml: списки с отступом внутри mapping'ов,
    многострочные скрипты блоком |.
    """

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def _represent_str(dumper: yaml.SafeDumper, value: str):
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


GocdDumper.add_representer(str, _represent_str)


def _declared(model: BaseModel, skip: tuple = ("name",)) -> Dict[str, Any]:
    """
    Поля модели в порядке объявления, но только те, что реально заданы
    (при загрузке - присутствовали в файле, при сборке - переданы явно).
    Так render(parse(x)) не добавляет в файл значений по умолчанию.
    """
    result: Dict[str, Any] = {}
    for field in type(model).model_fields:
        if field in skip or field not in model.model_fields_set:
            continue
        value = getattr(model, field)
        if value is None:
            continue
        result[field] = _plain(value)
    return result


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return _declared(value, skip=())
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _task(task) -> Dict[str, Any]:
    if isinstance(task, ScriptTask):
        return {"script": task.script}
    if isinstance(task, ExecTask):
        return {"exec": _declared(task, skip=())}
    raise TypeError(f"Unsupported task {type(task).__name__}")


def _job(job: Job) -> Dict[str, Any]:
    body = _declared(job, skip=("name", "tasks"))
    body["tasks"] = [_task(task) for task in job.tasks]
    return body


def _stage(stage: Stage) -> Dict[str, Any]:
    body = _declared(stage, skip=("name", "jobs"))
    body["jobs"] = {job.name: _job(job) for job in stage.jobs}
    return {stage.name: body}


def _pipeline(pipeline: Pipeline) -> Dict[str, Any]:
    body = _declared(pipeline, skip=("name", "materials", "stages"))
    body["materials"] = {
        material.name: _declared(material) for material in pipeline.materials
    }
    body["stages"] = [_stage(stage) for stage in pipeline.stages]
    return body


def to_document(document: PipelineFile) -> Dict[str, Any]:
    """
    PipelineFile -> dict в раскладке gocd-yaml-config-plugin.
    """
    return {
        "format_version": document.format_version,
        "pipelines": {pipeline.name: _pipeline(pipeline) for pipeline in document.pipelines},
    }


def _with_comments(body: str, comments: Mapping[str, Sequence[str]]) -> str:
    """
    Вставляет строки-комментарии над ключами mapping'ов с теми же отступами.
    PyYAML комментарии не хранит, поэтому это делается по готовому тексту.
    """
    lines = []
    for line in body.splitlines(keepends=True):
        stripped = line.lstrip(" ")
        key, colon, _ = stripped.partition(":")
        if colon and key in comments:
            indent = line[: len(line) - len(stripped)]
            lines.extend(f"{indent}# {text}\n" for text in comments[key])
        lines.append(line)
    return "".join(lines)


def render(
    document: PipelineFile,
    header: bool = True,
    comments: Optional[Mapping[str, Sequence[str]]] = None,
) -> str:
    """
    comments - {ключ: [строки]}: комментарии над каждым вхождением ключа.
    """
    body = yaml.dump(
        to_document(document),
        Dumper=GocdDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=1000,
    )
    if comments:
        body = _with_comments(body, comments)
    return (HEADER if header else "") + body
