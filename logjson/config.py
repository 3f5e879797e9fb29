"""
Configuration for logjson.

Settings are plain pydantic models, frozen once built. They can be created in
code or loaded from a YAML file, optionally nested under a ``logging_json`` key:

    logging_json:
      enable: true
      record_delimiter: "\\n"
      backend: orjson
      fields:
        mdc:
          flat_fields: true
        timestamp:
          date_format: epoch_millis
      additional_field:
        service:
          value: checkout
"""

from typing import Any, Dict, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from logjson.errors import ConfigError

DEFAULT_CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')


class FieldConfig(_Frozen):
    """Settings shared by every built-in field"""
    enabled: bool = True
    field_name: Optional[str] = None


class TimestampField(FieldConfig):
    # 'default' (ISO-8601), 'epoch_millis' or a strftime pattern
    date_format: str = 'default'
    # 'default' means UTC
    zone_id: str = 'default'

    @field_validator('zone_id')
    @classmethod
    def _check_zone(cls, value: str) -> str:
        if value != 'default':
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown time zone: {value}")
        return value


class LevelField(FieldConfig):
    case: Literal['upper', 'lower', 'as_is'] = 'as_is'


class MdcField(FieldConfig):
    flat_fields: bool = False


class ArgumentsField(FieldConfig):
    always_write: bool = False
    include_structured_arguments: bool = True
    include_non_structured_arguments: bool = True


class AdditionalField(_Frozen):
    """A static field added to every document"""
    value: str
    type: Literal['string', 'int', 'long', 'float', 'double', 'boolean'] = 'string'

    @model_validator(mode='after')
    def _check_value(self) -> 'AdditionalField':
        self.converted()
        return self

    def converted(self) -> Union[str, int, float, bool]:
        if self.type in ('int', 'long'):
            return int(self.value)
        if self.type in ('float', 'double'):
            return float(self.value)
        if self.type == 'boolean':
            lowered = self.value.strip().lower()
            if lowered not in ('true', 'false'):
                raise ValueError(f"Not a boolean: {self.value}")
            return lowered == 'true'
        return self.value


class FieldsConfig(_Frozen):
    timestamp: TimestampField = Field(default_factory=TimestampField)
    sequence: FieldConfig = Field(default_factory=FieldConfig)
    logger_class_name: FieldConfig = Field(default_factory=FieldConfig)
    logger_name: FieldConfig = Field(default_factory=FieldConfig)
    level: LevelField = Field(default_factory=LevelField)
    message: FieldConfig = Field(default_factory=FieldConfig)
    thread_name: FieldConfig = Field(default_factory=FieldConfig)
    thread_id: FieldConfig = Field(default_factory=FieldConfig)
    mdc: MdcField = Field(default_factory=MdcField)
    ndc: FieldConfig = Field(default_factory=FieldConfig)
    host_name: FieldConfig = Field(default_factory=FieldConfig)
    process_name: FieldConfig = Field(default_factory=FieldConfig)
    process_id: FieldConfig = Field(default_factory=FieldConfig)
    stack_trace: FieldConfig = Field(default_factory=FieldConfig)
    error_type: FieldConfig = Field(default_factory=FieldConfig)
    error_message: FieldConfig = Field(default_factory=FieldConfig)
    arguments: ArgumentsField = Field(default_factory=ArgumentsField)


class LogJsonConfig(_Frozen):
    """Top-level settings"""
    # False switches to pass-through mode: human-readable lines with a JSON suffix
    enable: bool = True
    pretty_print: bool = False
    record_delimiter: Optional[str] = None
    backend: Literal['json', 'orjson'] = 'json'
    console_format: str = DEFAULT_CONSOLE_FORMAT
    console_date_format: Optional[str] = None
    fields: FieldsConfig = Field(default_factory=FieldsConfig)
    additional_field: Dict[str, AdditionalField] = Field(default_factory=dict)


def config_from_dict(data: Optional[Dict[str, Any]]) -> LogJsonConfig:
    """
    Validate a configuration mapping.

    Raises:
        ConfigError: If the mapping is not a valid configuration
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")
    if 'logging_json' in data:
        data = data['logging_json'] or {}
    try:
        return LogJsonConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid logging configuration: {e}") from e


def load_config(config_path) -> LogJsonConfig:
    """
    Load and validate a YAML configuration file

    Args:
        config_path: Path to the YAML file

    Returns:
        LogJsonConfig: Validated configuration

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}")

    return config_from_dict(data)
