from pydantic import BaseModel, Field, model_validator


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The key/name of the environment variable to read (without client prefix).
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool" and "list".
        default (str | int | float | bool | list | None): Default value if the variable is not set. If None, the variable is required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class ChunkingSettings(BaseModel):
    """Character-based chunking parameters used on every (re)index."""

    chunk_size: int = Field(default=1200, gt=0)
    overlap: int = Field(default=220, ge=0)

    @model_validator(mode="after")
    def _check_overlap(self) -> "ChunkingSettings":
        if self.overlap >= self.chunk_size:
            raise ValueError(f"Chunk overlap ({self.overlap}) must be smaller than chunk size ({self.chunk_size}).")
        return self


class EmbeddingSettings(BaseModel):
    """Embedding backend selection, resolved once at startup.

    Attributes:
        provider: "primary" (hosted, OpenAI-compatible API) or "mock" (offline hash vectors).
        model: Model name sent to the backend and stored next to every vector.
        timeout: Per-request timeout in seconds.
        retries: Extra attempts after a transient provider failure.
    """

    provider: str = "primary"
    model: str = "text-embedding-3-small"
    timeout: float = 30.0
    retries: int = Field(default=2, ge=0)


class RankerSettings(BaseModel):
    """Weights of the hybrid ranking signals and the default result size."""

    semantic_weight: float = 0.30
    lexical_weight: float = 0.25
    coverage_weight: float = 0.35
    concept_weight: float = 0.10
    top_k: int = Field(default=6, gt=0)


class DeciderSettings(BaseModel):
    """Thresholds of the evidence-mode decision.

    Attributes:
        fallback_floor: Top scores below this answer in fallback mode.
        ambiguity_margin: Max gap between the two best scores to call a question ambiguous.
        ambiguity_min_score: Both competing scores must reach this bar.
        ambiguity_cap: Max alternatives offered in ambiguous mode.
        grounded_margin: Supporting chunks must be within this gap of the top score.
        grounded_cap: Max chunks selected in grounded mode. Loaded from DECIDER_GROUNDED_CAP,
                      falling back to the ranker's top_k so both limits agree.
    """

    fallback_floor: float = 0.45
    ambiguity_margin: float = 0.12
    ambiguity_min_score: float = 0.45
    ambiguity_cap: int = Field(default=3, gt=0)
    grounded_margin: float = 0.08
    grounded_cap: int = Field(default=6, gt=0)


class InsightSettings(BaseModel):
    """Parameters of question clustering for analytics."""

    cluster_similarity_threshold: float = 0.83
    cluster_candidate_window: int = Field(default=40, gt=0)


class AgentSettings(BaseModel):
    """All core settings bundled for injection into services."""

    chunking: ChunkingSettings = ChunkingSettings()
    embedding: EmbeddingSettings = EmbeddingSettings()
    ranker: RankerSettings = RankerSettings()
    decider: DeciderSettings = DeciderSettings()
    insight: InsightSettings = InsightSettings()
