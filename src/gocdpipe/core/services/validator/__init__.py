from .core import validate_pipeline_file, RELAY_STAGE_ORDER

__all__ = ["validate_pipeline_file", "RELAY_STAGE_ORDER"]
