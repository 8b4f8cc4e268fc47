"""Stub LLM provider for testing."""

from animation_engine.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from animation_engine.logging import get_logger

logger = get_logger(__name__)

STUB_MANIM_CODE = '''from manim import *


class GeneratedScene(Scene):
    def construct(self):
        title = Text("Stub Animation")
        circle = Circle(color=BLUE)
        self.play(Write(title))
        self.play(title.animate.to_edge(UP))
        self.play(Create(circle))
        self.wait(1)
'''


class StubLLMProvider(LLMProvider):
    """Stub provider that returns mock LLM responses for testing.

    Requests that carry a script (code generation) get a fenced Manim scene
    back; everything else gets a short narration script.
    """

    @property
    def name(self) -> str:
        return "stub"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,  # noqa: ARG002
        max_tokens: int = 4096,  # noqa: ARG002
    ) -> LLMResponse:
        """Return a mock completion response."""
        logger.info("stub_llm_complete", message_count=len(messages))

        user_message = ""
        for msg in reversed(messages):
            if msg.role == "user":
                user_message = msg.content
                break

        if "Script:" in user_message:
            content = f"```python\n{STUB_MANIM_CODE}```"
        else:
            content = (
                f"Scene 1: Introduce the idea behind {user_message[:60]}.\n"
                "Scene 2: Draw the key shapes and label them.\n"
                "Scene 3: Animate the transformation and summarize the result."
            )

        return LLMResponse(
            content=content,
            model="stub-model",
            usage={
                "prompt_tokens": len(user_message.split()),
                "completion_tokens": len(content.split()),
                "total_tokens": len(user_message.split()) + len(content.split()),
            },
            finish_reason="stop",
        )

    async def health_check(self) -> bool:
        """Stub provider is always healthy."""
        return True
