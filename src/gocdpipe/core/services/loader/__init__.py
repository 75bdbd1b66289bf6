from .core import load_pipeline_file, parse_pipeline_document, document_to_model

__all__ = [
    "load_pipeline_file",
    "parse_pipeline_document",
    "document_to_model",
]
