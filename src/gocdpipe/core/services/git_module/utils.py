import os
import stat
from pathlib import Path
from typing import Union


PathLike = Union[str, Path]

def on_rm_error(func, path, exc_info):
    """
    Обработчик ошибок для shutil.rmtree: снимает read-only
    (частый кейс для .git/objects/pack на Windows) и повторяет удаление.
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)

def ensure_base_temp_dir(path: PathLike) -> Path:
    """
    Гарантирует, что BASE_TEMP_DIR существует, и возвращает его как Path.
    """
    base = Path(path)
    base.mkdir(parents=True, exist_ok=True)
    return base
