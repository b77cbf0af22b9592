import math

import httpx

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EmbeddingSettings, EnvConfig

MOCK_VECTOR_SIZE = 256
MOCK_MODEL_TAG = "mock-hash-v1"


def hash_to_vector(text: str, size: int = MOCK_VECTOR_SIZE) -> list[float]:
    """Deterministic character-hash embedding, L2-normalized.

    Character i adds ord(ch) % 97 to bucket (i * 31) % size.
    """
    vector = [0.0] * size
    for i, ch in enumerate(text):
        vector[(i * 31) % size] += ord(ch) % 97
    norm = math.sqrt(sum(v * v for v in vector)) or 1.0
    return [v / norm for v in vector]


class EmbedClientMock(EmbedClientInterface):
    """Offline provider: reproducible vectors without any network access."""

    def __init__(self, helper_config: HelperConfig, settings: EmbeddingSettings):
        super().__init__(helper_config=helper_config, settings=settings)
        self._vector_size = int(self.get_config_val("VECTOR_SIZE", default=MOCK_VECTOR_SIZE, val_type="number"))

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_engine_name(self) -> str:
        return "Mock"

    def get_model_tag(self) -> str:
        return MOCK_MODEL_TAG

    def _get_required_config(self) -> list[EnvConfig]:
        return [EnvConfig(env_key="VECTOR_SIZE", val_type="number", default=MOCK_VECTOR_SIZE)]

    def _get_auth_header(self) -> dict:
        return {}

    def _get_base_url(self) -> str:
        return ""

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    # request hooks of the interface; unused because do_embed never calls the network
    def get_endpoint_embedding(self) -> str:
        return ""

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        return response_data.get("embeddings", [])

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def boot(self) -> None:
        # nothing to connect to
        return None

    async def do_healthcheck(self) -> httpx.Response:
        return httpx.Response(status_code=200)

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        return [hash_to_vector(text, self._vector_size) for text in texts]
