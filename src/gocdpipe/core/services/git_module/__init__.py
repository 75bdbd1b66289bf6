from .core import GitMaterialResolver

from .exceptions import (
    GitExceptions,
    GitCloneError,
    GitLocalPathError,
)

__all__ = [
    "GitMaterialResolver",
    "GitExceptions",
    "GitCloneError",
    "GitLocalPathError",
]
