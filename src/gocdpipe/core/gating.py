from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from gocdpipe.model import ApprovalType, LockBehavior, Pipeline, Stage
from .models import StageRun

"""
Упрощённая модель того, как GoCD решает, какие стадии запускать.

Сам движок внешний, здесь только его правила, чтобы можно было
проверить пайплайн до того, как он попадёт на сервер.
"""


def _blocked_reason(
    stage: Stage,
    index: int,
    previous: Optional[StageRun],
    approved: set,
) -> Optional[str]:
    """
    Возвращает None, если стадию можно запускать, иначе причину.
    """
    approval = stage.approval
    previous_passed = previous is None or previous.status == "passed"
    if previous_passed:
        not_passed = None
    elif previous.status == "failed":
        not_passed = f"stage {previous.stage} failed"
    else:
        not_passed = f"previous stage {previous.stage} did not pass"

    if approval.type == ApprovalType.SUCCESS:
        if index == 0:
            # Первая стадия с success запускается на изменение материала
            return None
        return not_passed

    if stage.name not in approved:
        return "waiting for manual approval"
    if approval.allow_only_on_success:
        return not_passed
    return None


def plan_run(
    pipeline: Pipeline,
    approvals: Iterable[str] = (),
    outcomes: Optional[Mapping[str, bool]] = None,
) -> List[StageRun]:
    """
    Проходит стадии по порядку.

    approvals - имена стадий, которые подтвердили вручную (для первой
                стадии с manual это ручной запуск пайплайна)
    outcomes  - {стадия: прошла ли}; стадии без записи считаются успешными

    Стадия, которая не запустилась, останавливает все следующие.
    После упавшей стадии GoCD сам дальше не идёт, но ручную стадию без
    allow_only_on_success можно подтвердить и запустить.
    """
    approved = set(approvals)
    outcomes = outcomes or {}
    runs: List[StageRun] = []
    halted: Optional[str] = None
    previous: Optional[StageRun] = None

    for index, stage in enumerate(pipeline.stages):
        if halted is not None:
            runs.append(StageRun(stage=stage.name, status="not_run", reason=halted))
            continue

        blocked = _blocked_reason(stage, index, previous, approved)
        if blocked is not None:
            status = "awaiting_approval" if stage.approval.type == ApprovalType.MANUAL else "not_run"
            run = StageRun(stage=stage.name, status=status, reason=blocked)
            runs.append(run)
            halted = f"stage {stage.name} did not run"
            previous = run
            continue

        passed = outcomes.get(stage.name, True)
        run = StageRun(stage=stage.name, status="passed" if passed else "failed")
        runs.append(run)
        previous = run

    return runs


def can_schedule(
    lock_behavior: Optional[LockBehavior],
    run_in_progress: bool,
    last_run_failed: bool = False,
) -> bool:
    """
    Можно ли начать новый запуск пайплайна.

    unlockWhenFinished - следующий запуск ждёт окончания текущего
    lockOnFailure      - то же, плюс пайплайн остаётся заблокированным после падения
    none               - запуски идут параллельно
    """
    if lock_behavior is None or lock_behavior == LockBehavior.NONE:
        return True
    if run_in_progress:
        return False
    if lock_behavior == LockBehavior.LOCK_ON_FAILURE and last_run_failed:
        return False
    return True
