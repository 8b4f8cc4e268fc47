"""Generation backends: script and code synthesis plus rendering.

Each call receives its own ``GenerationConfig`` so that concurrent runs for
different users never share provider credentials.
"""

import httpx

from animation_engine.adapters.llm import (
    GeminiProvider,
    GroqProvider,
    LLMMessage,
    LLMProvider,
    OpenAIProvider,
    StubLLMProvider,
)
from animation_engine.adapters.renderer import (
    ManimRenderer,
    ProgressCallback,
    RendererProvider,
    RenderRequest,
    StubRendererProvider,
)
from animation_engine.config import settings
from animation_engine.domain.enums import AIModel
from animation_engine.domain.models import BackendCredentials, GenerationConfig
from animation_engine.exceptions import BackendError, RenderError
from animation_engine.logging import get_logger
from animation_engine.utils.code import strip_code_fences

logger = get_logger(__name__)

SYSTEM_PROMPT = "You are an expert in Manim animation programming."

SCRIPT_PROMPT = """Generate a detailed scene description for an animation based on the following prompt.
The scene description should include:
1. Clear visual elements to include
2. Movement and transitions
3. Timing suggestions
4. Color and style recommendations

Prompt: {prompt}

Provide a structured, detailed scene description that could be used to create a Manim animation."""

CODE_PROMPT = """Generate Manim Python code to create an animation based on the following prompt and script.
The animation should be approximately {duration} seconds long.

Prompt: {prompt}

Script:
{script}

Create complete, executable Manim Python code that implements this animation.
The code should:
1. Import everything it needs (from manim import *)
2. Define exactly one class that extends Scene or ThreeDScene
3. Implement all animations in its construct method
4. Use run_time and wait calls so the total length matches the requested duration
5. Be clean and well structured

Return only the Python code without any additional explanation."""


class GenerationBackends:
    """Text generation and rendering backends used by the pipeline."""

    def __init__(self, renderer: RendererProvider | None = None) -> None:
        self.renderer = renderer or self._get_renderer_provider()

    def _get_renderer_provider(self) -> RendererProvider:
        """Get the configured renderer provider."""
        provider_name = settings.renderer_provider.lower()

        if provider_name == "stub":
            return StubRendererProvider()
        return ManimRenderer()

    def get_llm_provider(self, config: GenerationConfig) -> LLMProvider:
        """Build a provider for one call from the run's config."""
        if settings.llm_provider == "stub":
            return StubLLMProvider()

        if config.ai_model == AIModel.OPENAI:
            return OpenAIProvider(api_key=config.api_key)
        if config.ai_model == AIModel.GEMINI:
            return GeminiProvider(api_key=config.api_key)
        if config.ai_model == AIModel.GROQ:
            return GroqProvider(api_key=config.api_key)

        raise BackendError(f"Unknown AI model: {config.ai_model}")

    async def _complete(self, instructions: str, config: GenerationConfig) -> str:
        provider = self.get_llm_provider(config)
        messages = [
            LLMMessage(role="system", content=SYSTEM_PROMPT),
            LLMMessage(role="user", content=instructions),
        ]

        try:
            response = await provider.complete(
                messages,
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
            )
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:300]
            raise BackendError(
                f"{provider.name} request failed with status {e.response.status_code}: {detail}"
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{provider.name} request failed: {e}") from e
        except BackendError:
            raise
        except Exception as e:
            # Missing keys surface as ValueError; SDK errors vary by provider
            raise BackendError(str(e) or f"{provider.name} request failed") from e

        if not response.content:
            raise BackendError(f"{provider.name} returned an empty response")

        return response.content

    async def generate_script(self, prompt: str, config: GenerationConfig) -> str:
        """Turn the user's prompt into a scene-by-scene script."""
        logger.info("script_generation_started", ai_model=str(config.ai_model))
        script = await self._complete(SCRIPT_PROMPT.format(prompt=prompt), config)
        logger.info("script_generation_completed", length=len(script))
        return script

    async def generate_code(
        self,
        prompt: str,
        script: str,
        duration_seconds: int,
        config: GenerationConfig,
    ) -> str:
        """Turn the prompt and script into Manim source code."""
        logger.info(
            "code_generation_started",
            ai_model=str(config.ai_model),
            duration=duration_seconds,
        )
        raw = await self._complete(
            CODE_PROMPT.format(prompt=prompt, script=script, duration=duration_seconds),
            config,
        )
        code = strip_code_fences(raw)
        if not code:
            raise BackendError("Model returned no code")
        logger.info("code_generation_completed", length=len(code))
        return code

    async def check_llm_health(self, credentials: BackendCredentials) -> dict[str, bool]:
        """Check each text backend's availability with the given credentials."""
        results: dict[str, bool] = {}
        for model in AIModel:
            provider = self.get_llm_provider(GenerationConfig(model, credentials))
            try:
                results[str(model)] = await provider.health_check()
            except Exception as e:
                logger.warning("llm_health_check_failed", ai_model=str(model), error=str(e))
                results[str(model)] = False
        return results

    async def render_video(
        self,
        code: str,
        on_progress: ProgressCallback | None,
        output_name: str,
    ) -> str:
        """Render code to a video and return its public reference.

        Raises:
            RenderError: If no scene is found or the renderer fails.
        """
        result = await self.renderer.render(
            RenderRequest(code=code, output_name=output_name, quality=settings.manim_quality),
            on_progress=on_progress,
        )
        if not result.success or result.output_path is None:
            raise RenderError(result.error_message or "Rendering failed")

        return f"{settings.video_url_prefix.rstrip('/')}/{result.output_path.name}"

    @property
    def renderer_name(self) -> str:
        return self.renderer.name
