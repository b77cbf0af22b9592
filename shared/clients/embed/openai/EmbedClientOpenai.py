from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.errors import EmbeddingConfigurationError, EmbeddingProviderError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EmbeddingSettings, EnvConfig


class EmbedClientOpenai(EmbedClientInterface):
    """Hosted embeddings through an OpenAI-compatible /embeddings API.

    This is the "primary" provider. The API key is read from
    EMBED_OPENAI_API_KEY, falling back to OPENAI_API_KEY.
    """

    def __init__(self, helper_config: HelperConfig, settings: EmbeddingSettings):
        super().__init__(helper_config=helper_config, settings=settings)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.openai.com/v1", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string") or helper_config.get_string_val(
            "OPENAI_API_KEY", default=""
        )
        if not self._api_key:
            raise EmbeddingConfigurationError(
                "EMBED_OPENAI_API_KEY (or OPENAI_API_KEY) is required when EMBEDDING_PROVIDER=primary."
            )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.openai.com/v1"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/models"

    def get_endpoint_embedding(self) -> str:
        return "/embeddings"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract vectors from {"data": [{"embedding": [...], "index": 0}, ...]}.

        Items are sorted by "index" since the API does not promise input order.
        """
        data = response_data.get("data")
        if not data or not isinstance(data, list):
            raise EmbeddingProviderError(
                "Embedding response does not contain a data list. "
                f"Response keys: {list(response_data.keys())}"
            )
        try:
            ordered = sorted(data, key=lambda item: item.get("index", 0))
            return [[float(v) for v in item["embedding"]] for item in ordered]
        except (KeyError, TypeError, ValueError) as exc:
            raise EmbeddingProviderError(f"Malformed embedding item in response: {exc}")
