"""Document model, markup parser and the shipped document corpus."""

from .model import Command, Document, GraphTag, Knob, ResetPolicy, Switch, SwitchKind
from .parser import parse
from .registry import DocumentRegistry

__all__ = [
    "Command",
    "Document",
    "DocumentRegistry",
    "GraphTag",
    "Knob",
    "ResetPolicy",
    "Switch",
    "SwitchKind",
    "parse",
]
