# core/ci_scripts.py
from __future__ import annotations

from typing import List, Optional

from gocdpipe import settings


CHECKRUNS_SCRIPT = "/devinfra/scripts/checks/githubactions/checkruns.py"
K8S_TUNNEL_SCRIPT = "/devinfra/scripts/k8s/k8stunnel"
K8S_DEPLOY_SCRIPT = "/devinfra/scripts/k8s/k8s-deploy.py"
SENTRY_RELEASE_SCRIPT = "./relay/scripts/create-sentry-release"


def _join_lines(lines: List[str]) -> str:
    """
    Склеивает строки команды через перенос с обратным слэшем,
    как это принято в script-блоках GoCD. Всегда заканчивается переводом строки.
    """
    return " \\\n".join(lines) + "\n"


def revision_expr(variable: str) -> str:
    return "${" + variable + "}"


# =====================
# checks / GitHub checkruns
# =====================

def make_checkruns_script(
    repository: str,
    revision: str,
    check_names: List[str],
) -> str:
    """
    Скрипт ожидания check-run'ов GitHub для ревизии.

    repository  - owner/repo
    revision    - ревизия или выражение вида ${GO_REVISION_...}
    check_names - имена check-run'ов, каждое отдельным позиционным аргументом

    Требует переменную GITHUB_TOKEN в окружении job'а.
    """
    if not check_names:
        raise ValueError("At least one check-run name is required")

    lines = [CHECKRUNS_SCRIPT, repository, revision]
    lines.extend(f'"{name}"' for name in check_names)
    return _join_lines(lines)


# ===========
# Sentry release
# ===========

def make_sentry_release_script(revision: str, project: str) -> str:
    return f'{SENTRY_RELEASE_SCRIPT} "{revision}" "{project}"\n'


# ===========
# Kubernetes deploy
# ===========

def image_reference(
    revision: str,
    registry: Optional[str] = None,
    repository: Optional[str] = None,
    image: Optional[str] = None,
) -> str:
    """
    Полное имя образа: <registry>/<repository>/<image>:<revision>.
    По умолчанию us-central1-docker.pkg.dev/sentryio/relay/relay:<revision>.
    """
    registry = registry or settings.IMAGE_REGISTRY
    repository = repository or settings.IMAGE_REPOSITORY
    image = image or settings.IMAGE_NAME
    return f"{registry}/{repository}/{image}:{revision}"


def make_k8s_deploy_script(label_selector: str, image: str, container_name: str) -> str:
    """
    Поднимает туннель до кластера и только после этого обновляет образ
    в подах, подходящих под label selector.
    """
    lines = [
        K8S_TUNNEL_SCRIPT,
        f"&& {K8S_DEPLOY_SCRIPT}",
        f'--label-selector="{label_selector}"',
        f'--image="{image}"',
        f'--container-name="{container_name}"',
    ]
    return _join_lines(lines)
