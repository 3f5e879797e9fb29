"""
Unit tests for configuration loading.
"""

import os
import tempfile

import pytest
from pydantic import ValidationError

from logjson.config import LogJsonConfig, config_from_dict, load_config
from logjson.errors import ConfigError


def write_yaml(content):
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yml', delete=False) as f:
        f.write(content)
    return f.name


class TestLogJsonConfig:
    """Test configuration models"""

    def test_defaults(self):
        """Should default to compact JSON with the stdlib backend"""
        config = LogJsonConfig()

        assert config.enable is True
        assert config.pretty_print is False
        assert config.record_delimiter is None
        assert config.backend == 'json'
        assert config.fields.timestamp.date_format == 'default'
        assert config.fields.mdc.flat_fields is False
        assert config.additional_field == {}

    def test_frozen(self):
        """Should not allow changes after construction"""
        config = LogJsonConfig()

        with pytest.raises(ValidationError):
            config.enable = False

    def test_from_dict_nested_key(self):
        """Should accept settings under a logging_json key"""
        config = config_from_dict({'logging_json': {'backend': 'orjson', 'pretty_print': True}})

        assert config.backend == 'orjson'
        assert config.pretty_print is True

    def test_from_dict_none(self):
        """Should treat an empty document as defaults"""
        assert config_from_dict(None) == LogJsonConfig()

    @pytest.mark.parametrize('data', [
        {'backend': 'yaml'},
        {'unknown_option': True},
        {'fields': {'level': {'case': 'title'}}},
        {'fields': {'timestamp': {'zone_id': 'Not/AZone'}}},
        {'additional_field': {'port': {'value': 'eighty', 'type': 'int'}}},
        {'additional_field': {'flag': {'value': 'yes', 'type': 'boolean'}}},
        ['not', 'a', 'mapping'],
    ])
    def test_invalid_config(self, data):
        """Should raise ConfigError for invalid settings"""
        with pytest.raises(ConfigError):
            config_from_dict(data)


class TestLoadConfig:
    """Test load_config"""

    def test_load_yaml(self):
        """Should load a YAML file"""
        path = write_yaml("""
logging_json:
  enable: false
  record_delimiter: "\\n"
  fields:
    mdc:
      flat_fields: true
    sequence:
      enabled: false
    message:
      field_name: msg
  additional_field:
    service:
      value: checkout
    replicas:
      value: "3"
      type: int
""")
        try:
            config = load_config(path)
        finally:
            os.unlink(path)

        assert config.enable is False
        assert config.record_delimiter == '\n'
        assert config.fields.mdc.flat_fields is True
        assert config.fields.sequence.enabled is False
        assert config.fields.message.field_name == 'msg'
        assert config.additional_field['replicas'].converted() == 3

    def test_missing_file(self):
        """Should raise ConfigError for a missing file"""
        with pytest.raises(ConfigError, match='not found'):
            load_config('/nonexistent/logjson.yml')

    def test_invalid_yaml(self):
        """Should raise ConfigError for unparsable YAML"""
        path = write_yaml('fields: [unclosed')
        try:
            with pytest.raises(ConfigError, match='Invalid YAML'):
                load_config(path)
        finally:
            os.unlink(path)

    def test_empty_file(self):
        """Should return defaults for an empty file"""
        path = write_yaml('')
        try:
            assert load_config(path) == LogJsonConfig()
        finally:
            os.unlink(path)
