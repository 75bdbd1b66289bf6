from typing import Dict, List, Optional, Sequence, Tuple

from .animation import run as run_animation
from .gating import plan_run
from .interpolation import render_tasks
from .renders import gocd as gocd_render
from .services.builders import pipeline as builder
from .services.git_module import GitMaterialResolver
from .services.git_module.models import LocalRepo
from .services.loader import load_pipeline_file
from .services.validator import validate_pipeline_file
from .models import PreviewResponse, RenderResponse, StageRun, ValidationReport
from gocdpipe import settings as default_settings
from gocdpipe.model import Pipeline, PipelineFile


class GocdPipeCore:
    def __init__(self, settings=None, workdir=None):
        self.settings = settings
        self.git = GitMaterialResolver(base_dir=workdir)
        self.logs: list[str] = []
        self.warnings: list[str] = []

    def render(self) -> RenderResponse:
        """
        Собирает пайплайн relay и рендерит его в gocd-yaml.
        """
        document, build_logs, build_warnings = builder.build_relay_pipeline(self.settings)
        self.logs.extend(build_logs)
        self.warnings.extend(build_warnings)

        report = validate_pipeline_file(document)
        self.logs.extend(report.logs)
        if not report.ok:
            self.warnings.append(
                "Собранный пайплайн не прошёл проверку. Файл не будет сохранён."
            )
            return RenderResponse(
                status="error",
                warnings=self.warnings,
                logs=self.logs,
            )

        template = gocd_render.render(
            document, comments=getattr(self.settings or default_settings, "KEY_COMMENTS", None)
        )
        summary = builder.summarize_pipeline(document.pipelines[0])
        return RenderResponse(
            status="ok",
            template=template,
            warnings=self.warnings,
            logs=self.logs,
            pipeline_summary=summary,
        )

    def check(
        self,
        path,
        expected_stage_order: Optional[Sequence[str]] = None,
    ) -> Tuple[PipelineFile, ValidationReport]:
        document = load_pipeline_file(path)
        report = validate_pipeline_file(document, expected_stage_order=expected_stage_order)
        self.logs.extend(report.logs)
        return document, report

    def plan(
        self,
        pipeline: Pipeline,
        approvals: Sequence[str] = (),
        failures: Sequence[str] = (),
    ) -> List[StageRun]:
        outcomes = {name: False for name in failures}
        return plan_run(pipeline, approvals=approvals, outcomes=outcomes)

    async def resolve_revisions(
        self,
        pipeline: Pipeline,
        revision: Optional[str] = None,
        repo_path=None,
        clone: bool = False,
    ) -> Dict[str, str]:
        """
        Ревизии материалов для предпросмотра скриптов.

        revision  - одна и та же ревизия для всех материалов;
        repo_path - HEAD локального клона (для всех материалов);
        clone     - shallow checkout каждого материала, как это сделал бы GoCD.
        """
        if revision:
            return {material.name: revision for material in pipeline.materials}

        revisions: Dict[str, str] = {}
        if repo_path is not None:
            local: LocalRepo = await self.git.from_existing_path(repo_path)
            self.logs.extend(local.logs)
            return {material.name: local.revision for material in pipeline.materials}

        if clone:
            for material in pipeline.materials:
                cloned: Optional[LocalRepo] = None
                try:
                    cloned = await run_animation(
                        self.git.checkout,
                        material,
                        text=f"Checkout материала {material.name}",
                    )
                    self.logs.extend(cloned.logs)
                    revisions[material.name] = cloned.revision
                finally:
                    if cloned is not None:
                        cloned.cleanup()
                        self.logs.append("Временная папка с материалом удалена.")
        return revisions

    async def preview(
        self,
        path,
        pipeline_name: Optional[str] = None,
        revision: Optional[str] = None,
        repo_path=None,
        clone: bool = False,
    ) -> PreviewResponse:
        document = load_pipeline_file(path)
        pipeline = builder.find_pipeline(document, pipeline_name)
        revisions = await self.resolve_revisions(
            pipeline, revision=revision, repo_path=repo_path, clone=clone
        )
        return PreviewResponse(
            pipeline=pipeline.name,
            revisions=revisions,
            tasks=render_tasks(pipeline, revisions),
            logs=self.logs,
        )
