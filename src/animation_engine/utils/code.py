"""Helpers for cleaning LLM-generated Manim code."""

import re

# Scene base classes Manim can render directly
SCENE_BASE_CLASSES = (
    "Scene",
    "ThreeDScene",
    "MovingCameraScene",
    "ZoomedScene",
    "VectorScene",
    "LinearTransformationScene",
)

_FENCE_PATTERN = re.compile(r"```[ \t]*(?:python|py)?[ \t]*\n(.*?)```", re.DOTALL | re.IGNORECASE)
_SCENE_PATTERN = re.compile(
    r"^class\s+(\w+)\s*\(\s*(?:\w+\.)?(" + "|".join(SCENE_BASE_CLASSES) + r")\s*\)\s*:",
    re.MULTILINE,
)


def strip_code_fences(text: str) -> str:
    """Return the code inside the first markdown fence, or the text itself.

    Models frequently wrap code in ```python fences despite being told not to.
    """
    match = _FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()

    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines.pop()
        text = "\n".join(lines).strip()
    return text


def extract_scene_class(code: str) -> str | None:
    """Find the name of the first class deriving from a Manim scene base."""
    match = _SCENE_PATTERN.search(code)
    return match.group(1) if match else None
