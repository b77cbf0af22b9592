"""Embedding failures, split by how callers must react to them."""


class EmbeddingConfigurationError(ValueError):
    """Fatal misconfiguration (unknown provider, missing or rejected credentials).

    Never retried; the caller should fail fast and surface it.
    """


class EmbeddingProviderError(Exception):
    """The provider failed or answered with something unusable.

    Transient causes (timeouts, 429, 5xx) are retried before this is raised.
    """
