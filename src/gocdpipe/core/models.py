from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional


class PipelineSummary(BaseModel):
    pipeline: str
    stages_count: int
    jobs_count: int
    stages: List[str]
    job_names: List[str]
    # Короткое текстовое описание для CLI
    description: str


class ValidationIssue(BaseModel):
    """
    Одно замечание валидатора.
    level   - error (документ нельзя отдавать в GoCD) или warning
    code    - машинный код правила, например timeout-not-positive
    path    - где найдено: pipelines.<name>.stages.<stage>.jobs.<job>...
    """
    level: Literal["error", "warning"]
    code: str
    path: str
    message: str


class ValidationReport(BaseModel):
    issues: List[ValidationIssue] = Field(default_factory=list)
    logs: List[str] = Field(default_factory=list)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.level == "error"]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.level == "warning"]

    @property
    def ok(self) -> bool:
        return not self.errors

    def codes(self) -> List[str]:
        return [issue.code for issue in self.issues]


class RenderedTask(BaseModel):
    stage: str
    job: str
    index: int
    script: str


StageStatus = Literal["passed", "failed", "awaiting_approval", "not_run"]


class StageRun(BaseModel):
    stage: str
    status: StageStatus
    reason: Optional[str] = None


class RenderResponse(BaseModel):
    status: Literal["ok", "error"]
    template: str = ""
    warnings: List[str] = []
    logs: List[str] = []
    pipeline_summary: Optional[PipelineSummary] = None


class PreviewResponse(BaseModel):
    pipeline: str
    revisions: Dict[str, str] = {}
    tasks: List[RenderedTask] = []
    logs: List[str] = []
