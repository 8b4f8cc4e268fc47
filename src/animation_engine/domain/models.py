"""Domain models - pure Python classes independent of database."""

from dataclasses import dataclass, field
from uuid import UUID

from animation_engine.domain.enums import AIModel, AnimationStatus


@dataclass(frozen=True)
class BackendCredentials:
    """API keys available to one pipeline run."""

    openai_api_key: str | None = None
    google_api_key: str | None = None
    groq_api_key: str | None = None

    def key_for(self, model: AIModel) -> str | None:
        """Return the key used by the given text generation backend."""
        return {
            AIModel.OPENAI: self.openai_api_key,
            AIModel.GEMINI: self.google_api_key,
            AIModel.GROQ: self.groq_api_key,
        }[model]

    def merged_over(self, defaults: "BackendCredentials") -> "BackendCredentials":
        """Fill keys missing here from the service defaults."""
        return BackendCredentials(
            openai_api_key=self.openai_api_key or defaults.openai_api_key,
            google_api_key=self.google_api_key or defaults.google_api_key,
            groq_api_key=self.groq_api_key or defaults.groq_api_key,
        )


@dataclass(frozen=True)
class GenerationConfig:
    """Per-call configuration passed to the text generation backends.

    Resolved once at the start of a run and threaded through every stage,
    so no shared client state is mutated between users.
    """

    ai_model: AIModel
    credentials: BackendCredentials = field(default_factory=BackendCredentials)

    @property
    def api_key(self) -> str | None:
        return self.credentials.key_for(self.ai_model)


@dataclass
class AnimationRequest:
    """Validated request to create an animation."""

    prompt: str
    title: str
    ai_model: AIModel
    duration: int


@dataclass
class AnimationSnapshot:
    """Detached view of an animation row used between pipeline stages."""

    id: UUID
    owner_id: UUID
    prompt: str
    ai_model: AIModel
    duration: int
    status: AnimationStatus
    script: str | None = None
    code: str | None = None
    video_url: str | None = None
