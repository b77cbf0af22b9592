from fastapi import HTTPException

from shared.clients.embed.errors import EmbeddingConfigurationError, EmbeddingProviderError


def embedding_http_error(exc: Exception) -> HTTPException:
    """Map an embedding failure to the HTTP error the caller sees."""
    if isinstance(exc, EmbeddingConfigurationError):
        return HTTPException(status_code=500, detail=f"Embedding provider is misconfigured: {exc}")
    return HTTPException(status_code=502, detail=f"Embedding provider failed: {exc}")


EMBEDDING_ERRORS = (EmbeddingConfigurationError, EmbeddingProviderError)
