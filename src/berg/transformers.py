from __future__ import annotations

from abc import ABC, abstractmethod

from .bionic import bionic


class TextTransformer(ABC):
    """
    A text strategy applied to each plain-text run of a document.

    Subclasses set ``name`` (the registry key used by the CLI) and implement
    ``transform``. Instances are callable so they can be handed straight to
    ``transform_html``.
    """

    name: str = ""
    description: str = ""

    @abstractmethod
    def transform(self, text: str) -> str:
        raise NotImplementedError

    def __call__(self, text: str) -> str:
        return self.transform(text)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


_REGISTRY: dict[str, type[TextTransformer]] = {}


def register_transformer(cls: type[TextTransformer]) -> type[TextTransformer]:
    if not cls.name:
        raise ValueError(f"{cls.__name__} must define a non-empty name")
    _REGISTRY[cls.name] = cls
    return cls


@register_transformer
class BionicTransformer(TextTransformer):
    name = "bionic"
    description = "Bold the leading half of every word."

    def transform(self, text: str) -> str:
        return bionic(text)


@register_transformer
class UppercaseTransformer(TextTransformer):
    name = "upper"
    description = "Uppercase all visible text."

    def transform(self, text: str) -> str:
        return text.upper()


def available_transformers() -> list[str]:
    return sorted(_REGISTRY)


def get_transformer(name: str) -> TextTransformer:
    try:
        cls = _REGISTRY[name]
    except KeyError:
        available = ", ".join(available_transformers())
        raise ValueError(
            f"Unknown transform: {name}. Available transforms: {available}"
        ) from None
    return cls()


__all__ = [
    "BionicTransformer",
    "TextTransformer",
    "UppercaseTransformer",
    "available_transformers",
    "get_transformer",
    "register_transformer",
]
