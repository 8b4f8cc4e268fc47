"""Error taxonomy shared by the request layer and the generation pipeline."""


class AnimationEngineError(Exception):
    """Base class for all application errors."""

    pass


class ValidationError(AnimationEngineError):
    """Input has the wrong shape or is out of range."""

    pass


class EntitlementError(AnimationEngineError):
    """The user has no generations remaining."""

    pass


class NotFoundError(AnimationEngineError):
    """A referenced record does not exist."""

    pass


class AccessDeniedError(AnimationEngineError):
    """The current user does not own the referenced record."""

    pass


class InvalidTransitionError(AnimationEngineError):
    """A status change that the task lifecycle does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move task from {current} to {target}")
        self.current = current
        self.target = target


class BackendError(AnimationEngineError):
    """A generation backend call failed (quota, auth, network, model)."""

    pass


class RenderError(BackendError):
    """The rendering backend failed to produce a video."""

    pass


class EncryptionError(BackendError):
    """A stored API key could not be encrypted or decrypted."""

    pass
