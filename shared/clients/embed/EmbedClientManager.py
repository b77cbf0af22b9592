from shared.helper.HelperConfig import HelperConfig
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.errors import EmbeddingConfigurationError
from shared.models.config import EmbeddingSettings

# EMBEDDING_PROVIDER value -> engine package under shared.clients.embed
PROVIDER_ENGINES: dict[str, str] = {
    "primary": "Openai",
    "openai": "Openai",
    "mock": "Mock",
}


class EmbedClientManager:
    """
    Manager class to instantiate the Embed client selected by EMBEDDING_PROVIDER.
    """

    def __init__(self, helper_config: HelperConfig, settings: EmbeddingSettings):
        self.helper_config = helper_config
        self.settings = settings
        self.logging = helper_config.get_logger()
        self.client = self._initialize_client()

    def _get_engine_from_settings(self) -> str:
        """
        Maps the configured provider to an engine name.

        Returns:
            str: The engine name, e.g. "Openai".

        Raises:
            EmbeddingConfigurationError: If the provider is empty or unknown. There is no
                                         silent fallback to another provider.
        """
        provider = (self.settings.provider or "").strip().lower()
        if not provider:
            raise EmbeddingConfigurationError("No embedding provider specified in configuration.")
        engine = PROVIDER_ENGINES.get(provider)
        if engine is None:
            raise EmbeddingConfigurationError(
                f"Unsupported EMBEDDING_PROVIDER: '{provider}'. Supported: {sorted(PROVIDER_ENGINES)}."
            )
        return engine

    def _initialize_client(self) -> EmbedClientInterface:
        """
        Imports and instantiates the Embed client class of the configured engine.

        Returns:
            EmbedClientInterface: The ready (not yet booted) client.

        Raises:
            EmbeddingConfigurationError: If the provider is unknown, the engine module cannot be
                                         loaded, or the client rejects its configuration.
        """
        engine = self._get_engine_from_settings()
        className = f"EmbedClient{engine}"
        try:
            module = __import__(
                f"shared.clients.embed.{engine.lower()}.{className}",
                fromlist=[className],
            )
            client_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise EmbeddingConfigurationError(f"Unsupported Embed engine specified: '{engine}'. Error: {e}")

        try:
            client = client_class(helper_config=self.helper_config, settings=self.settings)
        except EmbeddingConfigurationError:
            raise
        except ValueError as e:
            raise EmbeddingConfigurationError(f"Invalid configuration for Embed engine '{engine}': {e}")

        self.logging.debug(f"Instantiated Embed client for engine: {engine} (provider={self.settings.provider})")
        return client

    def get_client(self) -> EmbedClientInterface:
        """
        Returns the instantiated Embed client.

        Returns:
            EmbedClientInterface: The Embed client instance.
        """
        return self.client
