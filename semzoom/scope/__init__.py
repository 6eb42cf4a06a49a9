"""Scope navigation: code boxes, viewport and the frame-to-frame scope chain."""

from .viewport import Viewport, canvas_rect
from .code_box import CallBox, CodeBox, CodeBoxBuilder, scope_label
from .navigator import (
    FrameResult,
    RenderedScope,
    Scope,
    ScopeChain,
    ScopeKind,
    ScopeNavigator,
    Transition,
    root_scope,
)
from .session import ZoomSession, create_session

__all__ = [
    "Viewport",
    "canvas_rect",
    "CallBox",
    "CodeBox",
    "CodeBoxBuilder",
    "scope_label",
    "FrameResult",
    "RenderedScope",
    "Scope",
    "ScopeChain",
    "ScopeKind",
    "ScopeNavigator",
    "Transition",
    "root_scope",
    "ZoomSession",
    "create_session",
]
