from git import (
    Repo as GitRepo,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from pathlib import Path
from typing import List, Optional
from gocdpipe.core.config import BASE_TEMP_DIR
from gocdpipe.model import GitMaterial

from .models import LocalRepo
from .utils import ensure_base_temp_dir, PathLike
from .exceptions import GitCloneError, GitLocalPathError

import shutil
import tempfile


class GitMaterialResolver:
    """
    Узнаёт ревизию git-материала так же, как это сделал бы GoCD:

    - checkout(material)        - клонирование URL/ветки материала во временную папку
                                  (depth=1, если у материала shallow_clone);
    - from_existing_path(path)  - ревизия HEAD уже существующего клона.

    Оба метода возвращают LocalRepo с revision и логами шагов.
    """

    def __init__(self, base_dir: Optional[PathLike] = None) -> None:
        self.base_dir = Path(base_dir) if base_dir else BASE_TEMP_DIR

    async def checkout(self, material: GitMaterial, url: Optional[str] = None) -> LocalRepo:
        """
        Клонирует материал в <tmp>/<destination>.

        :param material: git-материал пайплайна.
        :param url:      подменить URL (например, https вместо ssh) без правки пайплайна.
        :raises GitCloneError: при любых ошибках клонирования.
        """
        repository = url or material.git
        logs: List[str] = []

        base_temp = ensure_base_temp_dir(self.base_dir)
        temp_root = Path(
            tempfile.mkdtemp(prefix=f"{material.name}_", dir=base_temp)
        )
        repo_dir = temp_root / (material.destination or material.name)

        logs.append(f"Создаём временную папку: {temp_root}")
        logs.append(
            f"Клонируем материал {material.name}: {repository!r} "
            f"(ветка {material.branch}, shallow={material.shallow_clone}) в {repo_dir}"
        )

        clone_kwargs = {"branch": material.branch}
        if material.shallow_clone:
            clone_kwargs["depth"] = 1

        repo_obj: Optional[GitRepo] = None
        try:
            repo_obj = GitRepo.clone_from(repository, repo_dir, **clone_kwargs)
            revision = repo_obj.head.commit.hexsha
            logs.append(f"Материал склонирован, ревизия {revision}")
        except (GitCommandError, ValueError) as e:
            logs.append("GitPython: ошибка при выполнении clone_from.")
            logs.append(str(e))
            shutil.rmtree(temp_root, ignore_errors=True)
            raise GitCloneError(repository=repository, branch=material.branch, logs=logs)
        finally:
            # Явно закрываем repo_obj, чтобы на Windows не оставались залоченные файлы
            if repo_obj is not None:
                repo_obj.close()

        return LocalRepo(
            root_dir=temp_root,
            repo_path=repo_dir,
            revision=revision,
            logs=logs,
            is_temporary=True,
        )

    async def from_existing_path(self, path: PathLike) -> LocalRepo:
        """
        Читает ревизию HEAD локального клона. Ничего не копирует.

        :raises GitLocalPathError: путь не существует, это не git-репозиторий
                                   или в нём ещё нет коммитов.
        """
        logs: List[str] = []

        repo_path = Path(path)
        logs.append(f"Используем существующий клон: {repo_path}")

        if not repo_path.is_dir():
            logs.append("Ошибка: указанный путь не существует или не является директорией.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)

        try:
            repo_obj = GitRepo(repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            logs.append("GitPython не считает директорию git-репозиторием.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)

        try:
            revision = repo_obj.head.commit.hexsha
        except ValueError as e:
            # Пустой репозиторий: HEAD указывает на несуществующую ветку
            logs.append(f"Не удалось прочитать HEAD: {e}")
            raise GitLocalPathError(path=str(repo_path), logs=logs)
        finally:
            repo_obj.close()

        logs.append(f"Ревизия HEAD: {revision}")

        # Важно: is_temporary = False - cleanup() не будет удалять реальный клон.
        return LocalRepo(
            root_dir=repo_path,
            repo_path=repo_path,
            revision=revision,
            logs=logs,
            is_temporary=False,
        )
