from typing import List, Optional


class CLIException(Exception):
    def __init__(self, *args, description: str = "Something happend..."):
        self.description = description
        super().__init__(description, *args)


class PipelineFormatError(CLIException):
    """
    Документ пайплайна не удалось разобрать или он не соответствует схеме
    gocd-yaml-config-plugin. Хранит логи шагов загрузки.
    """

    def __init__(
        self,
        description: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        super().__init__(*args, description=description)
        self.logs: List[str] = logs or []
