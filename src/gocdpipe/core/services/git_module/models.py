import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List
from .utils import on_rm_error

@dataclass
class LocalRepo:
    """
    Результат checkout'а материала.

    root_dir     - корневая папка checkout'а (для временных - временная директория).
    repo_path    - путь к рабочей копии (root_dir/<destination материала>).
    revision     - ревизия HEAD, то, что GoCD положил бы в GO_REVISION_<МАТЕРИАЛ>.
    logs         - текстовые логи шагов.
    is_temporary - если True, cleanup() удалит root_dir; если False - нет.
    """

    root_dir: Path
    repo_path: Path
    revision: str
    logs: List[str]
    is_temporary: bool = True

    def cleanup(self) -> None:
        """
        Удаляет временную папку, если is_temporary = True.
        Для существующих локальных клонов ничего не делает.
        """
        if self.is_temporary and self.root_dir.exists():
            shutil.rmtree(self.root_dir, onerror=on_rm_error)
