from pathlib import Path
import os
from tempfile import gettempdir

"""
Базовая настройка рабочего каталога для временных checkout'ов материалов.

По умолчанию всё складывается в системный /tmp/gocdpipe (или аналог на Windows).
Можно переопределить переменной окружения GOCDPIPE_WORKDIR.
"""

BASE_TEMP_DIR = Path(
    os.getenv("GOCDPIPE_WORKDIR", gettempdir())
) / "gocdpipe"

# Версии format_version, которые понимает gocd-yaml-config-plugin
SUPPORTED_FORMAT_VERSIONS = range(1, 11)
