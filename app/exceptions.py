"""Exception types raised by the ResumeForge services."""


class ResumeForgeError(Exception):
    """Base class for all service errors."""


class InputContractError(ResumeForgeError, ValueError):
    """Raised when a caller violates a request contract before any network call."""


class GenerationServiceError(ResumeForgeError, RuntimeError):
    """Raised when the generation collaborator fails (transport, status or body)."""


class DraftStoreError(ResumeForgeError, RuntimeError):
    """Raised when the draft/resume persistence collaborator fails."""


class ResumeImportError(ResumeForgeError, ValueError):
    """Raised when a generation reply carries no usable structured resume."""
