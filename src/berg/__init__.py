from .bionic import bionic, bionic_word
from .epub import (
    ArchiveOpenError,
    ArchiveReadError,
    ArchiveWriteError,
    BergError,
    DecodingError,
    EpubDocument,
    RewriteSummary,
    TransformError,
    rewrite_epub,
)
from .scanner import transform_html
from .transformers import (
    BionicTransformer,
    TextTransformer,
    UppercaseTransformer,
    get_transformer,
)

__all__ = [
    "bionic",
    "bionic_word",
    "transform_html",
    "TextTransformer",
    "BionicTransformer",
    "UppercaseTransformer",
    "get_transformer",
    "EpubDocument",
    "RewriteSummary",
    "rewrite_epub",
    "BergError",
    "ArchiveOpenError",
    "ArchiveReadError",
    "ArchiveWriteError",
    "DecodingError",
    "TransformError",
]
