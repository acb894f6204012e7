"""Usage: layout rule resolution helpers."""

from app.services.rules.layout_loader import LayoutMapStore
from app.services.rules.layout_resolver import LayoutRuleResolver, resolve_layout

__all__ = ["LayoutMapStore", "LayoutRuleResolver", "resolve_layout"]
