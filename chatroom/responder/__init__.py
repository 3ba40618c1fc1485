"""Automated responders answering ``@bot`` commands."""
from .responder_base import Responder, ResponderFailure, ResponderResult, UnavailableResponder


def __getattr__(name):
    """Lazy imports for optional dependencies."""
    if name == "OpenAIResponder":
        from .openai_responder import OpenAIResponder
        return OpenAIResponder
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'Responder',
    'ResponderFailure',
    'ResponderResult',
    'UnavailableResponder',
    'OpenAIResponder',
]
