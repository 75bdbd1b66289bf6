from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

"""
Ссылки на секреты GoCD: {{SECRET:[store][key]}}.

Значение секрета подставляет сам GoCD во время запуска, здесь мы только
проверяем синтаксис ссылки и следим, чтобы секреты не попадали в файл
открытым текстом.
"""

SECRET_PREFIX = "{{SECRET:"
SECRET_PATTERN = re.compile(r"\{\{SECRET:\[([^\[\]{}]+)\]\[([^\[\]{}]+)\]\}\}")

# Имена переменных, значения которых почти наверняка секретны
SENSITIVE_MARKERS = ("TOKEN", "SECRET", "PASSWORD", "PASSWD", "KEY")


@dataclass(frozen=True)
class SecretRef:
    store: str
    key: str

    def render(self) -> str:
        return f"{{{{SECRET:[{self.store}][{self.key}]}}}}"

    @classmethod
    def parse(cls, value: str) -> Optional["SecretRef"]:
        """
        Возвращает SecretRef, если value целиком является ссылкой на секрет.
        """
        match = SECRET_PATTERN.fullmatch(value.strip())
        if not match:
            return None
        return cls(store=match.group(1), key=match.group(2))


def is_secret_reference(value: str) -> bool:
    return SecretRef.parse(value) is not None


def find_malformed_secret_references(value: str) -> List[str]:
    """
    Ищет вхождения {{SECRET: которые не складываются в корректную ссылку.
    Возвращает найденные фрагменты (до ближайшего }} или до конца строки).
    """
    malformed: List[str] = []
    start = value.find(SECRET_PREFIX)
    while start != -1:
        match = SECRET_PATTERN.match(value, start)
        if match:
            start = value.find(SECRET_PREFIX, match.end())
            continue

        end = value.find("}}", start)
        fragment = value[start:] if end == -1 else value[start:end + 2]
        malformed.append(fragment)
        start = value.find(SECRET_PREFIX, start + len(SECRET_PREFIX))
    return malformed


def looks_like_plaintext_secret(name: str, value: str) -> bool:
    """
    Переменная с «секретным» именем (TOKEN, PASSWORD, ...), у которой
    значение записано литералом, а не ссылкой {{SECRET:...}}.
    """
    upper = name.upper()
    if not any(marker in upper for marker in SENSITIVE_MARKERS):
        return False
    if not value:
        return False
    return SECRET_PREFIX not in value
