"""Shared utilities."""

from animation_engine.utils.async_utils import run_async
from animation_engine.utils.code import extract_scene_class, strip_code_fences

__all__ = ["extract_scene_class", "run_async", "strip_code_fences"]
