import re
from enum import Enum
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LockBehavior(str, Enum):
    LOCK_ON_FAILURE = "lockOnFailure"
    UNLOCK_WHEN_FINISHED = "unlockWhenFinished"
    NONE = "none"


class ApprovalType(str, Enum):
    MANUAL = "manual"
    SUCCESS = "success"


class _Declaration(BaseModel):
    """
    Общая база для всех узлов документа: неизвестные ключи запрещены,
    чтобы опечатка в YAML не терялась молча.
    """

    model_config = ConfigDict(extra="forbid", use_enum_values=False)


def _stringify_variables(value):
    # GoCD хранит все переменные окружения как строки
    if value is None:
        return {}
    if not isinstance(value, dict):
        return value

    result = {}
    for name, raw in value.items():
        if isinstance(raw, bool):
            result[name] = "true" if raw else "false"
        elif raw is None:
            result[name] = ""
        elif isinstance(raw, (int, float)):
            result[name] = str(raw)
        else:
            result[name] = raw
    return result


class Approval(_Declaration):
    """
    Условие запуска стадии.
    type                  - manual (ручное подтверждение) или success (автоматически после успеха)
    allow_only_on_success - ручной запуск разрешён только если предыдущая стадия прошла
    """

    type: ApprovalType = ApprovalType.SUCCESS
    allow_only_on_success: bool = False
    roles: Optional[List[str]] = None
    users: Optional[List[str]] = None


class GitMaterial(_Declaration):
    """
    Git-материал пайплайна: запускает пайплайн при изменениях и отдаёт
    ревизию следующим стадиям через GO_REVISION_<ИМЯ>.
    """

    name: str
    git: str
    shallow_clone: bool = False
    branch: str = "master"
    destination: Optional[str] = None
    auto_update: bool = True
    ignore: Optional[List[str]] = None
    includes: Optional[List[str]] = None

    @property
    def revision_variable(self) -> str:
        return revision_variable_name(self.name)


class ScriptTask(_Declaration):
    script: str


class ExecTask(_Declaration):
    command: str
    arguments: List[str] = Field(default_factory=list)
    working_directory: Optional[str] = None
    run_if: Optional[Literal["passed", "failed", "any"]] = None


Task = Union[ScriptTask, ExecTask]


class Job(_Declaration):
    """
    Задача стадии: свой таймаут, elastic-профиль, переменные окружения
    и упорядоченный список task'ов.
    """

    name: str
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    secure_variables: Dict[str, str] = Field(default_factory=dict)
    timeout: Optional[int] = None
    elastic_profile_id: Optional[str] = None
    resources: Optional[List[str]] = None
    run_instance_count: Optional[Union[int, Literal["all"]]] = None
    tasks: List[Task] = Field(default_factory=list)

    @field_validator("environment_variables", "secure_variables", mode="before")
    @classmethod
    def stringify_variables(cls, value):
        return _stringify_variables(value)


class Stage(_Declaration):
    name: str
    approval: Approval = Field(default_factory=Approval)
    fetch_materials: bool = True
    clean_workspace: Optional[bool] = None
    keep_artifacts: Optional[bool] = None
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    jobs: List[Job] = Field(default_factory=list)

    @field_validator("environment_variables", mode="before")
    @classmethod
    def stringify_variables(cls, value):
        return _stringify_variables(value)

    @field_validator("approval", mode="before")
    @classmethod
    def approval_shorthand(cls, value):
        # approval: manual - короткая форма записи
        if value is None:
            return Approval()
        if isinstance(value, str):
            return {"type": value}
        return value

    @property
    def job_names(self) -> List[str]:
        return [job.name for job in self.jobs]

    def job(self, name: str) -> Job:
        for job in self.jobs:
            if job.name == name:
                return job
        raise KeyError(name)


class Pipeline(_Declaration):
    """
    Пайплайн: группа, поведение блокировки, общие переменные окружения,
    материалы и стадии в фиксированном порядке.
    """

    name: str
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    group: Optional[str] = None
    label_template: Optional[str] = None
    lock_behavior: Optional[LockBehavior] = None
    display_order: Optional[int] = None
    materials: List[GitMaterial] = Field(default_factory=list)
    stages: List[Stage] = Field(default_factory=list)

    @field_validator("environment_variables", mode="before")
    @classmethod
    def stringify_variables(cls, value):
        return _stringify_variables(value)

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def stage(self, name: str) -> Stage:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def material(self, name: str) -> GitMaterial:
        for material in self.materials:
            if material.name == name:
                return material
        raise KeyError(name)


class PipelineFile(_Declaration):
    """
    Один файл gocd-yaml-config-plugin: format_version + набор пайплайнов.
    """

    format_version: int = 10
    pipelines: List[Pipeline] = Field(default_factory=list)

    def pipeline(self, name: str) -> Pipeline:
        for pipeline in self.pipelines:
            if pipeline.name == name:
                return pipeline
        raise KeyError(name)


def revision_variable_name(material_name: str) -> str:
    """
    Имя переменной, в которую GoCD кладёт ревизию материала:
    relay_repo -> GO_REVISION_RELAY_REPO
    """
    return "GO_REVISION_" + re.sub(r"[^A-Z0-9]", "_", material_name.upper())
