"""
Unit tests for input validation and engine configuration.
"""

import pytest
from pydantic import ValidationError as ConfigError

from vertix.core.config import DAY, HOUR, EngineConfig, load_config
from vertix.crypto import ZERO_ADDRESS
from vertix.utils.validation import (
    MAX_AMOUNT,
    validate_address,
    validate_amount,
    validate_bps,
    validate_duration,
    validate_hash,
    validate_string,
)


class TestValidators:
    """Tests for (is_valid, error) validators."""

    def test_address_accepts_20_bytes(self):
        assert validate_address(b"\x01" * 20) == (True, "")

    def test_address_rejects_zero(self):
        valid, err = validate_address(ZERO_ADDRESS, "seller")
        assert not valid
        assert "seller" in err

    def test_address_rejects_wrong_type_and_length(self):
        assert not validate_address("0x" + "01" * 20)[0]
        assert not validate_address(b"\x01" * 19)[0]

    def test_amount_bounds(self):
        assert validate_amount(0)[0]
        assert validate_amount(MAX_AMOUNT)[0]
        assert not validate_amount(-1)[0]
        assert not validate_amount(MAX_AMOUNT + 1)[0]

    def test_amount_rejects_bool_and_float(self):
        assert not validate_amount(True)[0]
        assert not validate_amount(1.5)[0]

    def test_bps(self):
        assert validate_bps(10_000)[0]
        assert not validate_bps(10_001)[0]
        assert not validate_bps(0, min_val=1)[0]

    def test_duration(self):
        assert validate_duration(HOUR, HOUR, DAY)[0]
        assert not validate_duration(HOUR - 1, HOUR, DAY)[0]
        assert not validate_duration(DAY + 1, HOUR, DAY)[0]

    def test_hash_rejects_empty(self):
        assert validate_hash(b"\x01" * 32)[0]
        assert not validate_hash(bytes(32))[0]
        assert not validate_hash(b"\x01" * 31)[0]

    def test_string(self):
        assert validate_string("ipfs://x", "uri")[0]
        assert not validate_string("   ", "uri")[0]
        assert not validate_string(None, "uri")[0]


class TestEngineConfig:
    """Tests for configuration loading."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.min_duration == HOUR
        assert config.max_duration == 30 * DAY
        assert config.extension_threshold == 300
        assert config.extension_window == 600
        assert config.emergency_delay == 7 * DAY
        assert config.default_bid_increment_bps == 500

    def test_min_above_max_rejected(self):
        with pytest.raises(ConfigError):
            EngineConfig(min_duration=DAY, max_duration=HOUR)

    def test_fee_above_cap_rejected(self):
        with pytest.raises(ConfigError):
            EngineConfig(platform_fee_bps=2000, max_platform_fee_bps=1000)

    def test_load_from_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("VERTIX_EXTENSION_WINDOW", raising=False)
        env_file = tmp_path / "vertix.env"
        env_file.write_text("VERTIX_EXTENSION_WINDOW=900\nVERTIX_UNKNOWN=1\nOTHER=2\n")

        config = load_config(str(env_file))
        assert config.extension_window == 900

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / "vertix.env"
        env_file.write_text("VERTIX_PLATFORM_FEE_BPS=100\n")
        monkeypatch.setenv("VERTIX_PLATFORM_FEE_BPS", "300")

        config = load_config(str(env_file))
        assert config.platform_fee_bps == 300
