"""Rendering, presentation surfaces and the engine event bus."""

from .events import EventBus
from .render import DocumentRenderer, RenderedDocument
from .surface import RenderSurface, WidgetBoard

__all__ = ["DocumentRenderer", "EventBus", "RenderSurface", "RenderedDocument", "WidgetBoard"]
