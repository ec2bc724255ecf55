from __future__ import annotations


class GrassFieldError(Exception):
    """Base class for fatal generation errors."""


class ConfigurationError(GrassFieldError, ValueError):
    """Invalid parameters (noise, domain, chunk size, LOD thresholds...)."""


class MissingCollaboratorError(GrassFieldError, RuntimeError):
    """A required collaborator (terrain sampler) was not bound."""
