"""Resolve typed core settings from the environment, once, at startup."""

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import (
    AgentSettings,
    ChunkingSettings,
    DeciderSettings,
    EmbeddingSettings,
    InsightSettings,
    RankerSettings,
)


def load_chunking_settings(helper_config: HelperConfig) -> ChunkingSettings:
    defaults = ChunkingSettings()
    return ChunkingSettings(
        chunk_size=int(helper_config.get_number_val("CHUNK_SIZE", default=defaults.chunk_size)),
        overlap=int(helper_config.get_number_val("CHUNK_OVERLAP", default=defaults.overlap)),
    )


def load_embedding_settings(helper_config: HelperConfig) -> EmbeddingSettings:
    defaults = EmbeddingSettings()
    return EmbeddingSettings(
        provider=helper_config.get_string_val("EMBEDDING_PROVIDER", default=defaults.provider).lower(),
        model=helper_config.get_string_val("EMBEDDING_MODEL", default=defaults.model),
        timeout=helper_config.get_float_val("EMBED_TIMEOUT", default=defaults.timeout),
        retries=int(helper_config.get_number_val("EMBED_RETRIES", default=defaults.retries)),
    )


def load_ranker_settings(helper_config: HelperConfig) -> RankerSettings:
    defaults = RankerSettings()
    return RankerSettings(
        semantic_weight=helper_config.get_float_val("RANKER_WEIGHT_SEMANTIC", default=defaults.semantic_weight),
        lexical_weight=helper_config.get_float_val("RANKER_WEIGHT_LEXICAL", default=defaults.lexical_weight),
        coverage_weight=helper_config.get_float_val("RANKER_WEIGHT_COVERAGE", default=defaults.coverage_weight),
        concept_weight=helper_config.get_float_val("RANKER_WEIGHT_CONCEPT", default=defaults.concept_weight),
        top_k=int(helper_config.get_number_val("RANKER_TOP_K", default=defaults.top_k)),
    )


def load_decider_settings(helper_config: HelperConfig, ranker_top_k: int | None = None) -> DeciderSettings:
    """Read the decision thresholds.

    Without DECIDER_GROUNDED_CAP the grounded selection is capped at the ranker's top_k.
    """
    defaults = DeciderSettings()
    grounded_cap_default = ranker_top_k if ranker_top_k is not None else defaults.grounded_cap
    return DeciderSettings(
        fallback_floor=helper_config.get_float_val("DECIDER_FALLBACK_FLOOR", default=defaults.fallback_floor),
        ambiguity_margin=helper_config.get_float_val("DECIDER_AMBIGUITY_MARGIN", default=defaults.ambiguity_margin),
        ambiguity_min_score=helper_config.get_float_val("DECIDER_AMBIGUITY_MIN_SCORE", default=defaults.ambiguity_min_score),
        ambiguity_cap=int(helper_config.get_number_val("DECIDER_AMBIGUITY_CAP", default=defaults.ambiguity_cap)),
        grounded_margin=helper_config.get_float_val("DECIDER_GROUNDED_MARGIN", default=defaults.grounded_margin),
        grounded_cap=int(helper_config.get_number_val("DECIDER_GROUNDED_CAP", default=grounded_cap_default)),
    )


def load_insight_settings(helper_config: HelperConfig) -> InsightSettings:
    defaults = InsightSettings()
    return InsightSettings(
        cluster_similarity_threshold=helper_config.get_float_val(
            "INSIGHT_CLUSTER_THRESHOLD", default=defaults.cluster_similarity_threshold
        ),
        cluster_candidate_window=int(
            helper_config.get_number_val("INSIGHT_CLUSTER_WINDOW", default=defaults.cluster_candidate_window)
        ),
    )


def load_agent_settings(helper_config: HelperConfig) -> AgentSettings:
    """Read every core setting from the environment.

    Raises:
        ValueError: If a value is malformed (pydantic's ValidationError is a ValueError).
    """
    ranker = load_ranker_settings(helper_config)
    settings = AgentSettings(
        chunking=load_chunking_settings(helper_config),
        embedding=load_embedding_settings(helper_config),
        ranker=ranker,
        decider=load_decider_settings(helper_config, ranker_top_k=ranker.top_k),
        insight=load_insight_settings(helper_config),
    )
    helper_config.get_logger().debug(
        "Agent settings resolved: provider=%s model=%s chunk_size=%d overlap=%d top_k=%d",
        settings.embedding.provider,
        settings.embedding.model,
        settings.chunking.chunk_size,
        settings.chunking.overlap,
        settings.ranker.top_k,
    )
    return settings
