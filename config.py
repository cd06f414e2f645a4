# config.py
"""
Application settings. Read once at the edge (API startup) and passed
explicitly into the engine - the engine never reads the environment.

Environment variables (all optional):
    PEDICALC_DEFAULT_WEIGHT_UNIT   kg | lbs
    PEDICALC_DEFAULT_HEIGHT_UNIT   cm | inches
    PEDICALC_DEFAULT_TEMP_UNIT     celsius | fahrenheit
    PEDICALC_DECIMAL_PLACES        0-4
    PEDICALC_CONFIRM_CALCULATIONS  true | false
    PEDICALC_REFERENCE_URL         base URL of the hosted medication table
    PEDICALC_REFERENCE_KEY         API key for that table
    PEDICALC_REFERENCE_TABLE       table name (default pediatric_drugs)
    PEDICALC_REQUEST_TIMEOUT       seconds
    PEDICALC_LOG_LEVEL             INFO, DEBUG, ...
"""

import json
import logging
import os
from dataclasses import dataclass, asdict, fields, replace
from typing import Optional

from models import WeightUnit, HeightUnit, TemperatureUnit

logger = logging.getLogger("pedicalc-config")

# Never written by export_settings()
_SECRET_FIELDS = {"reference_api_key"}

@dataclass(frozen=True)
class AppSettings:
    # Units
    default_weight_unit: WeightUnit = WeightUnit.KG
    default_height_unit: HeightUnit = HeightUnit.CM
    default_temperature_unit: TemperatureUnit = TemperatureUnit.CELSIUS

    # Display
    decimal_places: int = 1
    confirm_calculations: bool = True

    # Reference data (hosted medication table)
    reference_url: str = ""
    reference_api_key: str = ""
    reference_table: str = "pediatric_drugs"
    request_timeout_sec: float = 5.0

    log_level: str = "INFO"

DEFAULT_SETTINGS = AppSettings()

def _coerce(name: str, raw, default):
    """Convert a raw env/JSON value to the type of the default. Raises ValueError."""
    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in ("1", "true", "yes", "on"):
            return True
        if text in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"{name} must be a boolean")
    if isinstance(default, (WeightUnit, HeightUnit, TemperatureUnit)):
        return type(default)(raw)
    if isinstance(default, int):
        value = int(raw)
        if name == "decimal_places" and not (0 <= value <= 4):
            raise ValueError("decimal_places must be between 0 and 4")
        return value
    if isinstance(default, float):
        value = float(raw)
        if value <= 0:
            raise ValueError(f"{name} must be positive")
        return value
    return str(raw)

def _apply(base: AppSettings, values: dict, source: str) -> AppSettings:
    updates = {}
    for f in fields(AppSettings):
        if f.name not in values:
            continue
        default = getattr(base, f.name)
        try:
            updates[f.name] = _coerce(f.name, values[f.name], default)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid setting {f.name}={values[f.name]!r} from {source}: {e}")
    return replace(base, **updates)

_ENV_KEYS = {
    "PEDICALC_DEFAULT_WEIGHT_UNIT": "default_weight_unit",
    "PEDICALC_DEFAULT_HEIGHT_UNIT": "default_height_unit",
    "PEDICALC_DEFAULT_TEMP_UNIT": "default_temperature_unit",
    "PEDICALC_DECIMAL_PLACES": "decimal_places",
    "PEDICALC_CONFIRM_CALCULATIONS": "confirm_calculations",
    "PEDICALC_REFERENCE_URL": "reference_url",
    "PEDICALC_REFERENCE_KEY": "reference_api_key",
    "PEDICALC_REFERENCE_TABLE": "reference_table",
    "PEDICALC_REQUEST_TIMEOUT": "request_timeout_sec",
    "PEDICALC_LOG_LEVEL": "log_level",
}

def load_settings(environ=None) -> AppSettings:
    environ = os.environ if environ is None else environ
    values = {field_name: environ[key] for key, field_name in _ENV_KEYS.items() if key in environ}
    return _apply(DEFAULT_SETTINGS, values, "environment")

def export_settings(settings: AppSettings) -> str:
    data = {k: (v.value if hasattr(v, "value") else v)
            for k, v in asdict(settings).items() if k not in _SECRET_FIELDS}
    return json.dumps(data, indent=2, sort_keys=True)

def import_settings(text: str, base: Optional[AppSettings] = None) -> Optional[AppSettings]:
    """Returns None when the payload is not a JSON object. Unknown keys are ignored."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        logger.error(f"Error loading settings: {e}")
        return None
    if not isinstance(data, dict):
        logger.error("Error loading settings: expected a JSON object")
        return None
    return _apply(base or DEFAULT_SETTINGS, data, "import")
