"""
OCRSnap Backend — Settings Unit Tests
======================================

What:  Validation rules on the pydantic-settings Settings class.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from ocrsnap.config import Settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
        s = Settings(_env_file=None)
        assert s.default_mode == "fast"
        assert s.default_language == "eng"
        assert s.image_field == "image"
        assert s.cors_origins_list == ["*"]

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_blank_default_language_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, default_language="  ")

    def test_cors_origins_split(self):
        s = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
        assert s.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MODE", "advanced")
        monkeypatch.setenv("ENGINE_TIMEOUT", "5")
        s = Settings(_env_file=None)
        assert s.default_mode == "advanced"
        assert s.engine_timeout == 5
