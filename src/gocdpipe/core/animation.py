import asyncio
import threading
import time
import sys
from typing import Any, Awaitable, Callable, Optional, TextIO, TypeVar

T = TypeVar("T")


async def run(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    text: str = "Загрузка",
    interval: float = 0.1,
    stream: Optional[TextIO] = None,
    **kwargs: Any,
) -> T:
    """
    Запускает асинхронную функцию func и крутит спиннер в ОТДЕЛЬНОМ потоке,
    пока функция не завершится.

    Спиннер пишет в stderr, чтобы stdout оставался чистым (например, для
    `gocdpipe preview ... > scripts.txt`). Если stream не терминал, кадры
    спиннера не рисуются, печатается только итоговая строка.
    """
    stream = stream or sys.stderr
    interactive = stream.isatty()
    spinner_chars = "|/-\\"
    stop_event = threading.Event()

    def spinner():
        i = 0
        while not stop_event.is_set():
            frame = spinner_chars[i % len(spinner_chars)]
            stream.write(f"\r{text} {frame}")
            stream.flush()
            i += 1
            time.sleep(interval)

    thread = None
    if interactive:
        thread = threading.Thread(target=spinner, daemon=True)
        thread.start()

    success = False

    try:
        result = await func(*args, **kwargs)
        success = True
        return result
    finally:
        stop_event.set()
        if thread is not None:
            await asyncio.to_thread(thread.join)
            stream.write("\r" + " " * (len(text) + 2) + "\r")

        if success:
            stream.write(f"{text} - ✅ Успешно\n")
        else:
            stream.write(f"{text} - ❌ Ошибка\n")
        stream.flush()
