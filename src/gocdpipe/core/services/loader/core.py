from __future__ import annotations

import yaml

from pathlib import Path
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError

from gocdpipe.exception import PipelineFormatError
from gocdpipe.model import PipelineFile

MERGE_TAG = "tag:yaml.org,2002:merge"

class UniqueKeySafeLoader(yaml.SafeLoader):
    """
    SafeLoader, который падает на повторяющихся ключах в mapping'е.
    Обычный PyYAML молча оставляет последнее значение, а для нас это
    означает потерю переменной окружения.

    Ключи слияния (<<: *anchor) проверяются не здесь: их раскрывает
    flatten_mapping, и явный ключ может перекрыть ключ из якоря.
    """

    def construct_mapping(self, node, deep=False):
        if isinstance(node, yaml.MappingNode):
            seen: Dict[Any, Any] = {}
            for key_node, _ in node.value:
                if key_node.tag == MERGE_TAG:
                    continue
                key = self.construct_object(key_node, deep=deep)
                if key in seen:
                    raise yaml.constructor.ConstructorError(
                        "while constructing a mapping",
                        node.start_mark,
                        f"found duplicate key {key!r}",
                        key_node.start_mark,
                    )
                seen[key] = True
        return super().construct_mapping(node, deep=deep)


def _require_mapping(value: Any, where: str, logs: List[str]) -> Mapping:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        logs.append(f"Ожидался mapping в {where}, получено: {type(value).__name__}")
        raise PipelineFormatError(f"'{where}' must be a mapping", logs=logs)
    return value


def _parse_task(raw: Any, where: str, logs: List[str]) -> Dict[str, Any]:
    if not isinstance(raw, Mapping) or len(raw) != 1:
        logs.append(f"Task {where} должен быть mapping'ом с одним ключом (script/exec).")
        raise PipelineFormatError(f"Task {where} must be a single-key mapping", logs=logs)

    kind, body = next(iter(raw.items()))
    if kind == "script":
        return {"script": body}
    if kind == "exec":
        return dict(_require_mapping(body, where, logs))

    logs.append(f"Неизвестный тип task'а {kind!r} в {where}.")
    raise PipelineFormatError(f"Unsupported task type {kind!r} at {where}", logs=logs)


def _parse_jobs(raw: Any, where: str, logs: List[str]) -> List[Dict[str, Any]]:
    jobs = []
    for name, body in _require_mapping(raw, where, logs).items():
        body = dict(_require_mapping(body, f"{where}.{name}", logs))
        tasks_raw = body.pop("tasks", None) or []
        if not isinstance(tasks_raw, list):
            raise PipelineFormatError(f"'{where}.{name}.tasks' must be a list", logs=logs)
        body["tasks"] = [
            _parse_task(task, f"{where}.{name}.tasks[{index}]", logs)
            for index, task in enumerate(tasks_raw)
        ]
        jobs.append({"name": str(name), **body})
    return jobs


def _parse_stages(raw: Any, where: str, logs: List[str]) -> List[Dict[str, Any]]:
    """
    Стадии в gocd-yaml - это список mapping'ов из одного ключа:
      - checks: {...}
    Порядок списка и есть порядок выполнения.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise PipelineFormatError(f"'{where}' must be a list of stages", logs=logs)

    stages = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping) or len(item) != 1:
            logs.append(f"Стадия {where}[{index}] должна быть mapping'ом из одного ключа.")
            raise PipelineFormatError(
                f"Stage {where}[{index}] must be a single-key mapping", logs=logs
            )
        name, body = next(iter(item.items()))
        body = dict(_require_mapping(body, f"{where}.{name}", logs))
        if "jobs" in body:
            body["jobs"] = _parse_jobs(body["jobs"], f"{where}.{name}.jobs", logs)
        stages.append({"name": str(name), **body})
    return stages


def _parse_materials(raw: Any, where: str, logs: List[str]) -> List[Dict[str, Any]]:
    materials = []
    for name, body in _require_mapping(raw, where, logs).items():
        body = dict(_require_mapping(body, f"{where}.{name}", logs))
        if "git" not in body:
            logs.append(f"Материал {name} не git: поддерживаются только git-материалы.")
            raise PipelineFormatError(
                f"Material {name!r} is not a git material", logs=logs
            )
        materials.append({"name": str(name), **body})
    return materials


def document_to_model(raw: Any, logs: List[str] | None = None) -> PipelineFile:
    """
    Превращает уже разобранный YAML (dict) в PipelineFile.
    """
    logs = logs if logs is not None else []
    document = dict(_require_mapping(raw, "<root>", logs))

    pipelines = []
    for name, body in _require_mapping(document.pop("pipelines", None), "pipelines", logs).items():
        body = dict(_require_mapping(body, f"pipelines.{name}", logs))
        where = f"pipelines.{name}"
        if "materials" in body:
            body["materials"] = _parse_materials(body["materials"], f"{where}.materials", logs)
        if "stages" in body:
            body["stages"] = _parse_stages(body["stages"], f"{where}.stages", logs)
        pipelines.append({"name": str(name), **body})
        logs.append(f"Найден пайплайн {name}.")

    try:
        return PipelineFile.model_validate({**document, "pipelines": pipelines})
    except ValidationError as e:
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            logs.append(f"{location}: {error['msg']}")
        raise PipelineFormatError(
            f"Document does not match gocd-yaml schema ({e.error_count()} errors)",
            logs=logs,
        )


def parse_pipeline_document(text: str, logs: List[str] | None = None) -> PipelineFile:
    logs = logs if logs is not None else []
    try:
        raw = yaml.load(text, Loader=UniqueKeySafeLoader)
    except yaml.YAMLError as e:
        logs.append("PyYAML: документ не разобран.")
        logs.append(str(e))
        raise PipelineFormatError("Failed to parse pipeline YAML", logs=logs)

    return document_to_model(raw, logs)


def load_pipeline_file(path) -> PipelineFile:
    """
    Загружает файл пайплайна с диска.

    :raises PipelineFormatError: файл не найден, это не YAML или документ не по схеме.
    """
    logs: List[str] = []
    file_path = Path(path)
    logs.append(f"Читаем файл пайплайна: {file_path}")

    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        logs.append(str(e))
        raise PipelineFormatError(f"Cannot read pipeline file {file_path}", logs=logs)

    return parse_pipeline_document(text, logs)
