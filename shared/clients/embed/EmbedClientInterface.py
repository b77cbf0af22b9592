import asyncio
from abc import abstractmethod

import httpx
from pydantic import BaseModel

from shared.clients.ClientInterface import ClientInterface
from shared.clients.embed.errors import EmbeddingConfigurationError, EmbeddingProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EmbeddingSettings

RETRY_BACKOFF_SECONDS = 0.5
_TRANSIENT_STATUS = {408, 429, 500, 502, 503, 504}


class EmbeddingResult(BaseModel):
    """Vectors for a batch of texts, tagged with the backend that produced them."""

    vectors: list[list[float]]
    provider: str
    model: str


class SingleEmbeddingResult(BaseModel):
    vector: list[float]
    provider: str
    model: str


class EmbedClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig, settings: EmbeddingSettings):
        self.settings = settings
        self.embed_model = settings.model
        super().__init__(helper_config=helper_config, timeout=settings.timeout)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    def get_provider_name(self) -> str:
        """Provider tag stored next to every vector (e.g. "primary", "mock")."""
        return self.settings.provider

    def get_model_tag(self) -> str:
        """Model tag stored next to every vector. Backends may override it."""
        return self.embed_model

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests (e.g. "/embeddings").

        Raises:
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            EmbeddingProviderError: If the response format is invalid or embeddings are empty.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        """Send one batched embedding request, retrying transient failures.

        Args:
            texts (list[str]): Texts to embed, all in a single request.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            EmbeddingConfigurationError: If the backend rejects the credentials (401/403).
            EmbeddingProviderError: If the backend keeps failing or answers with an error.
        """
        body = self.get_embed_payload(texts)
        attempts = self.settings.retries + 1
        last_error = "no attempt made"

        for attempt in range(1, attempts + 1):
            try:
                response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
            except httpx.TransportError as exc:
                last_error = f"{exc.__class__.__name__}: {exc}"
            else:
                if response.status_code == 200:
                    return self.extract_embeddings_from_response(response.json())
                if response.status_code in (401, 403):
                    raise EmbeddingConfigurationError(
                        f"Embedding provider '{self.get_engine_name()}' rejected the credentials "
                        f"(status {response.status_code})."
                    )
                last_error = f"status {response.status_code}, body: {response.text[:200]}"
                if response.status_code not in _TRANSIENT_STATUS:
                    break

            if attempt < attempts:
                self.logging.warning(
                    "Embedding request failed (attempt %d/%d): %s. Retrying...", attempt, attempts, last_error
                )
                await asyncio.sleep(RETRY_BACKOFF_SECONDS * 2 ** (attempt - 1))

        self.logging.error("Embedding request failed: %s", last_error)
        raise EmbeddingProviderError(f"Embedding request failed: {last_error}")

    async def embed_texts(self, texts: list[str]) -> EmbeddingResult:
        """Embed a batch of texts in one request.

        All vectors of one batch must share a dimension, so a reindex or an
        answer never mixes vectors of different shapes.

        Args:
            texts (list[str]): Texts to embed.

        Returns:
            EmbeddingResult: Vectors in input order plus provider and model tags.

        Raises:
            EmbeddingConfigurationError: Fatal misconfiguration.
            EmbeddingProviderError: Provider failure or malformed response.
        """
        if not texts:
            return EmbeddingResult(vectors=[], provider=self.get_provider_name(), model=self.get_model_tag())

        vectors = await self.do_embed(texts)
        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} texts."
            )
        dimensions = {len(v) for v in vectors}
        if len(dimensions) != 1 or 0 in dimensions:
            raise EmbeddingProviderError(f"Embedding provider returned inconsistent dimensions: {sorted(dimensions)}.")

        self.logging.debug(
            "Embedded %d texts with %s/%s (dim=%d)",
            len(texts), self.get_provider_name(), self.get_model_tag(), dimensions.pop(),
        )
        return EmbeddingResult(vectors=vectors, provider=self.get_provider_name(), model=self.get_model_tag())

    async def embed_single_text(self, text: str) -> SingleEmbeddingResult:
        """Embed one text; convenience wrapper around a one-element batch."""
        result = await self.embed_texts([text])
        return SingleEmbeddingResult(vector=result.vectors[0], provider=result.provider, model=result.model)
