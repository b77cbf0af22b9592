from shared.helper.HelperConfig import HelperConfig
from shared.clients.insight.InsightStoreInterface import InsightStoreInterface


class InsightStoreManager:
    """
    Manager class to instantiate the question analytics store selected by INSIGHT_ENGINE.
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.store = self._initialize_store()

    def _get_engine_from_env(self) -> str:
        engine = self.helper_config.get_string_val("INSIGHT_ENGINE", default="memory")
        return engine.strip().lower().capitalize()

    def _initialize_store(self) -> InsightStoreInterface:
        """
        Imports and instantiates the store class of the configured engine.

        Raises:
            ValueError: If the engine is unsupported.
        """
        engine = self._get_engine_from_env()
        className = f"InsightStore{engine}"
        try:
            module = __import__(
                f"shared.clients.insight.{engine.lower()}.{className}",
                fromlist=[className],
            )
            store_class = getattr(module, className)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported insight engine specified: '{engine}'. Error: {e}")

        store = store_class(helper_config=self.helper_config)
        self.logging.debug(f"Instantiated insight store for engine: {engine}")
        return store

    def get_store(self) -> InsightStoreInterface:
        return self.store
