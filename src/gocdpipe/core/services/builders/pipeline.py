import click

from typing import List, Optional, Tuple

from gocdpipe import settings as default_settings
from gocdpipe.core import ci_scripts
from gocdpipe.core.models import PipelineSummary
from gocdpipe.core.secrets import SecretRef
from gocdpipe.model import (
    Approval,
    ApprovalType,
    GitMaterial,
    Job,
    LockBehavior,
    Pipeline,
    PipelineFile,
    ScriptTask,
    Stage,
)


def _relay_material(settings) -> GitMaterial:
    return GitMaterial(
        name=settings.MATERIAL_NAME,
        git=settings.MATERIAL_URL,
        shallow_clone=True,
        branch=settings.MATERIAL_BRANCH,
        destination=settings.MATERIAL_DESTINATION,
    )


def _checks_stage(settings, material: GitMaterial, logs: List[str]) -> Stage:
    """
    Стадия checks: ручной запуск, ждём зелёные check-run'ы на ревизии материала.
    """
    script = ci_scripts.make_checkruns_script(
        settings.GITHUB_REPOSITORY,
        ci_scripts.revision_expr(material.revision_variable),
        list(settings.CHECK_RUNS),
    )
    job = Job(
        name="checks",
        environment_variables={
            "GITHUB_TOKEN": SecretRef(*settings.GITHUB_TOKEN_SECRET).render(),
        },
        timeout=settings.CHECKS_TIMEOUT,
        elastic_profile_id=settings.ELASTIC_PROFILE_ID,
        tasks=[ScriptTask(script=script)],
    )
    logs.append(
        f"Добавлена стадия checks: ожидание {len(settings.CHECK_RUNS)} check-run'ов "
        f"для {settings.GITHUB_REPOSITORY}."
    )
    return Stage(
        name="checks",
        approval=Approval(type=ApprovalType.MANUAL),
        fetch_materials=True,
        jobs=[job],
    )


def _deploy_stage(settings, material: GitMaterial, logs: List[str]) -> Stage:
    """
    Стадия deploy-experimental: автоматически после успешных checks.
    Два job'а: релиз в Sentry и обновление образа в k8s.
    """
    revision = ci_scripts.revision_expr(material.revision_variable)

    release_job = Job(
        name="create_sentry_release",
        environment_variables={
            "SENTRY_ORG": settings.SENTRY_ORG,
            "SENTRY_PROJECT": settings.SENTRY_PROJECT,
            "SENTRY_URL": settings.SENTRY_URL,
            "SENTRY_AUTH_TOKEN": SecretRef(*settings.SENTRY_AUTH_TOKEN_SECRET).render(),
        },
        timeout=settings.DEPLOY_TIMEOUT,
        elastic_profile_id=settings.ELASTIC_PROFILE_ID,
        tasks=[
            ScriptTask(
                script=ci_scripts.make_sentry_release_script(
                    revision, settings.SENTRY_PROJECT
                )
            )
        ],
    )

    image = ci_scripts.image_reference(
        revision,
        registry=settings.IMAGE_REGISTRY,
        repository=settings.IMAGE_REPOSITORY,
        image=settings.IMAGE_NAME,
    )
    deploy_job = Job(
        name="deploy",
        timeout=settings.DEPLOY_TIMEOUT,
        elastic_profile_id=settings.ELASTIC_PROFILE_ID,
        tasks=[
            ScriptTask(
                script=ci_scripts.make_k8s_deploy_script(
                    settings.LABEL_SELECTOR, image, settings.CONTAINER_NAME
                )
            )
        ],
    )
    logs.append(
        f"Добавлена стадия deploy-experimental: create_sentry_release, deploy ({image})."
    )
    return Stage(
        name="deploy-experimental",
        approval=Approval(type=ApprovalType.SUCCESS, allow_only_on_success=True),
        fetch_materials=True,
        jobs=[release_job, deploy_job],
    )


def build_relay_pipeline(settings=None) -> Tuple[PipelineFile, List[str], List[str]]:
    """
    Строим пайплайн deploy-relay-experimental.

    settings - модуль или объект с теми же атрибутами, что gocdpipe.settings
               (удобно подменять в тестах).

    Возвращает (PipelineFile, logs, warnings).
    """
    settings = settings or default_settings
    logs: List[str] = []
    warnings: List[str] = []

    click.echo(f"Строим пайплайн {settings.PIPELINE_NAME} (группа {settings.PIPELINE_GROUP})", err=True)
    logs.append(f"Строим пайплайн {settings.PIPELINE_NAME} (группа {settings.PIPELINE_GROUP})")

    material = _relay_material(settings)
    logs.append(
        f"Материал {material.name}: {material.git} ({material.branch}), "
        f"ревизия в ${{{material.revision_variable}}}"
    )

    stages = [
        _checks_stage(settings, material, logs),
        _deploy_stage(settings, material, logs),
    ]

    pipeline = Pipeline(
        name=settings.PIPELINE_NAME,
        environment_variables={
            "GCP_PROJECT": settings.GCP_PROJECT,
            "GKE_CLUSTER": settings.GKE_CLUSTER,
            "GKE_REGION": settings.GKE_REGION,
            "GKE_CLUSTER_ZONE": settings.GKE_CLUSTER_ZONE,
            "GKE_BASTION_ZONE": settings.GKE_BASTION_ZONE,
        },
        group=settings.PIPELINE_GROUP,
        lock_behavior=LockBehavior.UNLOCK_WHEN_FINISHED,
        materials=[material],
        stages=stages,
    )

    if settings.MATERIAL_BRANCH != default_settings.MATERIAL_BRANCH:
        warnings.append(
            f"Материал собран из ветки {settings.MATERIAL_BRANCH}, а не "
            f"{default_settings.MATERIAL_BRANCH}. Проверьте, что это намеренно."
        )

    document = PipelineFile(format_version=settings.FORMAT_VERSION, pipelines=[pipeline])
    logs.append(
        f"Пайплайн сформирован: {len(pipeline.stages)} стадий и "
        f"{sum(len(stage.jobs) for stage in pipeline.stages)} задач."
    )
    click.echo(logs[-1], err=True)

    return document, logs, warnings


def summarize_pipeline(pipeline: Pipeline) -> PipelineSummary:
    """
    Строит краткое резюме пайплайна для CLI.
    """
    stages = list(pipeline.stage_names)
    job_names = [job.name for stage in pipeline.stages for job in stage.jobs]
    stages_count = len(stages)
    jobs_count = len(job_names)

    if stages_count == 0 and jobs_count == 0:
        description = "Пайплайн пустой. Отредактируйте конфигурацию."
    else:
        gates = []
        for stage in pipeline.stages:
            gate = "вручную" if stage.approval.type == ApprovalType.MANUAL else "автоматически"
            gates.append(f"{stage.name} ({gate})")
        description = (
            f"Пайплайн {pipeline.name}: {stages_count} стадий и {jobs_count} задач: "
            f"стадии {', '.join(gates)}."
        )

    return PipelineSummary(
        pipeline=pipeline.name,
        stages_count=stages_count,
        jobs_count=jobs_count,
        stages=stages,
        job_names=job_names,
        description=description,
    )


def find_pipeline(document: PipelineFile, name: Optional[str] = None) -> Pipeline:
    """
    Пайплайн по имени или единственный пайплайн файла.
    """
    if name:
        return document.pipeline(name)
    if len(document.pipelines) != 1:
        raise KeyError(
            f"File declares {len(document.pipelines)} pipelines, choose one by name"
        )
    return document.pipelines[0]
