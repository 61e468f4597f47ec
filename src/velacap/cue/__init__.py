"""Minimal CUE reader used to extract parameter schemas from templates."""

from velacap.cue.lexer import CueError, CueSyntaxError
from velacap.cue.parameters import CueParameterError, get_parameters, kind_name

__all__ = [
    "CueError",
    "CueParameterError",
    "CueSyntaxError",
    "get_parameters",
    "kind_name",
]
