import pytest

from shared.helper.settings_loader import load_agent_settings, load_chunking_settings, load_embedding_settings

SETTING_KEYS = (
    "CHUNK_SIZE", "CHUNK_OVERLAP", "EMBEDDING_PROVIDER", "EMBEDDING_MODEL", "EMBED_TIMEOUT", "EMBED_RETRIES",
    "RANKER_WEIGHT_SEMANTIC", "RANKER_TOP_K", "DECIDER_FALLBACK_FLOOR", "DECIDER_GROUNDED_CAP",
    "INSIGHT_CLUSTER_THRESHOLD",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in SETTING_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(helper_config):
    settings = load_agent_settings(helper_config)

    assert (settings.chunking.chunk_size, settings.chunking.overlap) == (1200, 220)
    assert settings.embedding.provider == "primary"
    assert settings.embedding.retries == 2
    assert settings.ranker.top_k == 6
    assert settings.decider.fallback_floor == 0.45
    assert settings.insight.cluster_similarity_threshold == 0.83


def test_environment_overrides(helper_config, monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "500")
    monkeypatch.setenv("CHUNK_OVERLAP", "50")
    monkeypatch.setenv("EMBEDDING_PROVIDER", " Mock ")
    monkeypatch.setenv("EMBED_TIMEOUT", "5")
    monkeypatch.setenv("RANKER_WEIGHT_SEMANTIC", "1")
    monkeypatch.setenv("RANKER_TOP_K", "3")
    monkeypatch.setenv("DECIDER_FALLBACK_FLOOR", "0.5")
    monkeypatch.setenv("INSIGHT_CLUSTER_THRESHOLD", "0.9")

    settings = load_agent_settings(helper_config)

    assert (settings.chunking.chunk_size, settings.chunking.overlap) == (500, 50)
    assert settings.embedding.provider == "mock"
    assert settings.embedding.timeout == 5.0
    assert isinstance(settings.ranker.semantic_weight, float)
    assert settings.ranker.semantic_weight == 1.0
    assert settings.ranker.top_k == 3
    assert settings.decider.fallback_floor == 0.5
    assert settings.insight.cluster_similarity_threshold == 0.9


def test_grounded_cap_follows_ranker_top_k(helper_config, monkeypatch):
    monkeypatch.setenv("RANKER_TOP_K", "3")
    assert load_agent_settings(helper_config).decider.grounded_cap == 3

    monkeypatch.setenv("DECIDER_GROUNDED_CAP", "2")
    assert load_agent_settings(helper_config).decider.grounded_cap == 2


def test_overlap_must_be_smaller_than_size(helper_config, monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "100")
    monkeypatch.setenv("CHUNK_OVERLAP", "100")

    with pytest.raises(ValueError):
        load_chunking_settings(helper_config)


def test_malformed_number(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_RETRIES", "two")

    with pytest.raises(ValueError):
        load_embedding_settings(helper_config)


class TestHelperConfig:
    def test_required_value_missing(self, helper_config, monkeypatch):
        monkeypatch.delenv("SOME_REQUIRED_KEY", raising=False)

        with pytest.raises(ValueError):
            helper_config.get_string_val("SOME_REQUIRED_KEY")

    def test_empty_value_uses_default(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_KEY", "")
        assert helper_config.get_string_val("SOME_KEY", default="fallback") == "fallback"

    def test_bool_and_list(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_FLAG", "Yes")
        monkeypatch.setenv("SOME_LIST", "[a, b ,c]")

        assert helper_config.get_bool_val("SOME_FLAG") is True
        assert helper_config.get_list_val("SOME_LIST") == ["a", "b", "c"]

    def test_list_needs_brackets(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_LIST", "a,b")

        with pytest.raises(ValueError):
            helper_config.get_list_val("SOME_LIST")
