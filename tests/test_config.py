"""
Tests for execution/case_research/config.py

Covers: the static effort table, effort resolution, ProviderSettings.from_env.
"""

import pytest


class TestEffortProfiles:

    def test_table_values(self):
        from execution.case_research.config import EFFORT_PROFILES, EffortLevel, ReasoningDepth
        assert EFFORT_PROFILES[EffortLevel.QUICK].reasoning_depth == ReasoningDepth.NONE
        assert EFFORT_PROFILES[EffortLevel.QUICK].max_output_tokens == 1500
        assert EFFORT_PROFILES[EffortLevel.QUICK].retrieval_chunk_limit == 5
        assert EFFORT_PROFILES[EffortLevel.STANDARD].retrieval_chunk_limit == 8
        assert EFFORT_PROFILES[EffortLevel.THOROUGH].reasoning_depth == ReasoningDepth.MEDIUM
        assert EFFORT_PROFILES[EffortLevel.DEEP].max_output_tokens == 4000
        assert EFFORT_PROFILES[EffortLevel.DEEP].retrieval_chunk_limit == 15

    def test_every_level_has_a_profile(self):
        from execution.case_research.config import EFFORT_PROFILES, EffortLevel
        assert set(EFFORT_PROFILES) == set(EffortLevel)

    def test_profiles_are_immutable(self):
        from dataclasses import FrozenInstanceError
        from execution.case_research.config import get_effort_profile
        with pytest.raises(FrozenInstanceError):
            get_effort_profile("deep").max_output_tokens = 1


class TestResolveEffort:

    def test_none_defaults_to_standard(self):
        from execution.case_research.config import resolve_effort, EffortLevel
        assert resolve_effort(None) == EffortLevel.STANDARD

    def test_string_is_coerced(self):
        from execution.case_research.config import resolve_effort, EffortLevel
        assert resolve_effort("Thorough") == EffortLevel.THOROUGH

    def test_enum_passes_through(self):
        from execution.case_research.config import resolve_effort, EffortLevel
        assert resolve_effort(EffortLevel.QUICK) is EffortLevel.QUICK

    def test_unknown_raises(self):
        from execution.case_research.config import resolve_effort
        with pytest.raises(ValueError, match="Unknown effort level"):
            resolve_effort("extreme")

    def test_get_profile_is_pure(self):
        from execution.case_research.config import get_effort_profile
        assert get_effort_profile("deep") == get_effort_profile("deep")
        assert get_effort_profile() == get_effort_profile("standard")


class TestProviderSettings:

    def test_from_env(self, monkeypatch):
        from execution.case_research.config import ProviderSettings
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("GOOGLE_API_KEY", "g-test")
        monkeypatch.setenv("GEMINI_CHAT_MODEL", "gemini-test")
        settings = ProviderSettings.from_env()
        assert settings.openai_api_key == "sk-test"
        assert settings.gemini_api_key == "g-test"
        assert settings.gemini_chat_model == "gemini-test"

    def test_missing_keys_are_none(self, monkeypatch):
        from execution.case_research.config import ProviderSettings
        for var in ("OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"):
            monkeypatch.setenv(var, "")
        settings = ProviderSettings.from_env()
        assert settings.openai_api_key is None
        assert settings.gemini_api_key is None
