"""
Tests of relay configuration loading.
"""

import json
import logging

import pytest

from scale_gateway.config import DEFAULT_PHANT_HOST
from scale_gateway.config import MIN_UPLOAD_SECS
from scale_gateway.config import get_config_file_path
from scale_gateway.config import load_config
from scale_gateway.errors import ConfigError

VALID = {
    "bleLocalName": "BowlScale",
    "publicKey": "pubkey",
    "privateKey": "secret-private-key",
    "uploadSecs": 9,
}


def write_config(tmp_path, data):
    path = tmp_path / "scalegateway.cfg"
    path.write_text(json.dumps(data))
    return path


def test_load_config(tmp_path):
    """Test loading of valid configuration"""
    config = load_config(write_config(tmp_path, VALID))

    assert config.ble_local_name == "BowlScale"
    assert config.public_key == "pubkey"
    assert config.private_key == "secret-private-key"
    assert config.upload_secs == MIN_UPLOAD_SECS
    assert config.sink == "phant"
    assert config.phant_host == DEFAULT_PHANT_HOST
    assert config.stage_timeout is None
    assert config.influxdb is None


def test_private_key_not_logged(tmp_path, caplog):
    """Test private key is neither logged nor in the config repr"""
    caplog.set_level(logging.INFO)

    config = load_config(write_config(tmp_path, VALID))

    assert "secret-private-key" not in caplog.text
    assert "<elided>" in caplog.text
    assert "secret-private-key" not in repr(config)


@pytest.mark.parametrize("field", ["bleLocalName", "publicKey", "privateKey", "uploadSecs"])
def test_missing_field(tmp_path, field):
    """Test missing required field is reported"""
    data = {k: v for k, v in VALID.items() if k != field}

    with pytest.raises(ConfigError) as ctx:
        load_config(write_config(tmp_path, data))

    assert ctx.value.field == field
    assert field in str(ctx.value)


@pytest.mark.parametrize(
    "field, value",
    [
        ("bleLocalName", ""),
        ("publicKey", ""),
        ("privateKey", 42),
        ("uploadSecs", MIN_UPLOAD_SECS - 1),
        ("uploadSecs", "60"),
        ("uploadSecs", 9.5),
        ("uploadSecs", True),
        ("sink", "mqtt"),
        ("phantHost", ""),
        ("stageTimeoutSecs", 0),
        ("stageTimeoutSecs", "5"),
    ],
)
def test_invalid_field(tmp_path, field, value):
    """Test invalid field is reported"""
    data = dict(VALID, **{field: value})

    with pytest.raises(ConfigError) as ctx:
        load_config(write_config(tmp_path, data))

    assert ctx.value.field == field


def test_optional_fields(tmp_path):
    """Test loading of optional fields"""
    data = dict(VALID, phantHost="phant.example.com", stageTimeoutSecs=5)
    config = load_config(write_config(tmp_path, data))

    assert config.phant_host == "phant.example.com"
    assert config.stage_timeout == 5.0


def test_influxdb_sink(tmp_path, monkeypatch):
    """Test InfluxDB sink configuration with environment fallback"""
    monkeypatch.setenv("INFLUXDB_URL", "http://influx:8086")
    data = dict(VALID, sink="influxdb", influxdb={"token": "tok", "bucket": "kitchen"})

    config = load_config(write_config(tmp_path, data))

    assert config.sink == "influxdb"
    assert config.influxdb.token == "tok"
    assert config.influxdb.bucket == "kitchen"
    assert config.influxdb.url == "http://influx:8086"


def test_influxdb_sink_no_token(tmp_path, monkeypatch):
    monkeypatch.delenv("INFLUXDB_TOKEN", raising=False)
    data = dict(VALID, sink="influxdb")

    with pytest.raises(ConfigError) as ctx:
        load_config(write_config(tmp_path, data))

    assert ctx.value.field == "influxdb.token"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.cfg")


def test_invalid_json(tmp_path):
    path = tmp_path / "scalegateway.cfg"
    path.write_text("{bleLocalName: ")

    with pytest.raises(ConfigError):
        load_config(path)


def test_config_file_path(monkeypatch, tmp_path):
    """Test config file path from environment and home directory"""
    monkeypatch.setenv("SCALE_GATEWAY_CONFIG", str(tmp_path / "gw.cfg"))
    assert get_config_file_path() == tmp_path / "gw.cfg"

    monkeypatch.delenv("SCALE_GATEWAY_CONFIG")
    monkeypatch.setenv("HOME", str(tmp_path))
    assert get_config_file_path() == tmp_path / "scalegateway.cfg"
