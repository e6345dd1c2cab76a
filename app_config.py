# app_config.py
# Handles loading and saving of engine settings (layout spacing, defaults, assistant).

import configparser
import logging
import os
import re

import constants
from utils import is_valid_color_hex

logger = logging.getLogger(__name__)


class AppSettings:
    def __init__(self):
        self.node_sep = constants.DEFAULT_NODE_SEP
        self.rank_sep = constants.DEFAULT_RANK_SEP
        self.edge_sep = constants.DEFAULT_EDGE_SEP
        self.component_gap = constants.DEFAULT_COMPONENT_GAP
        self.table_width = constants.DEFAULT_TABLE_WIDTH
        self.preserve_positions = True
        self.default_table_color = constants.DEFAULT_TABLE_COLOR
        self.column_data_types = constants.DEFAULT_COLUMN_DATA_TYPES[:]
        self.assistant_model = constants.DEFAULT_ASSISTANT_MODEL
        self.assistant_base_url = constants.DEFAULT_ASSISTANT_BASE_URL
        self.assistant_api_key_env = constants.DEFAULT_ASSISTANT_API_KEY_ENV
        self.assistant_temperature = constants.DEFAULT_ASSISTANT_TEMPERATURE

    def layout_spacing(self):
        """Keyword arguments for layout_engine.apply_layout."""
        return {
            "node_sep": self.node_sep,
            "rank_sep": self.rank_sep,
            "edge_sep": self.edge_sep,
            "component_gap": self.component_gap,
            "table_width": self.table_width,
        }

    def __repr__(self):
        return (f"AppSettings(layout=({self.node_sep}, {self.rank_sep}, {self.edge_sep}), "
                f"preserve_positions={self.preserve_positions}, model={self.assistant_model!r})")


def _get_positive_int(config, section, option, fallback):
    try:
        value = config.getint(section, option, fallback=fallback)
    except ValueError:
        logger.warning("Setting [%s] %s is not an integer, using %s", section, option, fallback)
        return fallback
    if value < 0:
        logger.warning("Setting [%s] %s must not be negative, using %s", section, option, fallback)
        return fallback
    return value


def load_app_settings(path=constants.CONFIG_FILE, create_if_missing=False):
    """Loads settings from the config file; missing or invalid values fall back to defaults."""
    settings = AppSettings()
    config = configparser.ConfigParser()

    if not os.path.exists(path):
        logger.info("Config file '%s' not found. Using defaults.", path)
        if create_if_missing:
            save_app_settings(settings, path)
        return settings

    try:
        config.read(path, encoding="utf-8")
    except configparser.Error as e:
        logger.error("Config file '%s' could not be parsed (%s). Using defaults.", path, e)
        return settings

    settings.node_sep = _get_positive_int(config, 'Layout', 'node_sep', settings.node_sep)
    settings.rank_sep = _get_positive_int(config, 'Layout', 'rank_sep', settings.rank_sep)
    settings.edge_sep = _get_positive_int(config, 'Layout', 'edge_sep', settings.edge_sep)
    settings.component_gap = _get_positive_int(config, 'Layout', 'component_gap', settings.component_gap)
    settings.table_width = _get_positive_int(config, 'Layout', 'table_width', settings.table_width) or constants.DEFAULT_TABLE_WIDTH
    try:
        settings.preserve_positions = config.getboolean(
            'Layout', constants.CONFIG_KEY_PRESERVE_POSITIONS, fallback=settings.preserve_positions)
    except ValueError:
        logger.warning("Setting [Layout] %s is not a boolean, using %s",
                       constants.CONFIG_KEY_PRESERVE_POSITIONS, settings.preserve_positions)

    color_hex = config.get('DefaultTableColors', 'color_hex', fallback='').strip()
    if color_hex and is_valid_color_hex(color_hex):
        settings.default_table_color = color_hex
    elif color_hex:
        logger.warning("Default table color '%s' is not a hex color, using %s", color_hex, settings.default_table_color)

    types_str = config.get('ColumnDataTypes', 'types', fallback='')
    # One type per line or comma-separated; commas inside DECIMAL(10,2) are not separators
    loaded_types = [t.strip().upper() for line in types_str.splitlines()
                    for t in re.split(r',(?![^\(]*\))', line) if t.strip()]
    if loaded_types:
        settings.column_data_types = loaded_types

    settings.assistant_model = config.get('Assistant', 'model', fallback=settings.assistant_model)
    settings.assistant_base_url = config.get('Assistant', 'base_url', fallback=settings.assistant_base_url)
    settings.assistant_api_key_env = config.get('Assistant', 'api_key_env', fallback=settings.assistant_api_key_env)
    try:
        settings.assistant_temperature = config.getfloat('Assistant', 'temperature', fallback=settings.assistant_temperature)
    except ValueError:
        logger.warning("Setting [Assistant] temperature is not a number, using %s", settings.assistant_temperature)

    logger.debug("Loaded settings from %s: %r", path, settings)
    return settings


def save_app_settings(settings, path=constants.CONFIG_FILE):
    """Saves settings to the config file. Returns False when the file cannot be written."""
    config = configparser.ConfigParser()
    config['Layout'] = {
        'node_sep': str(settings.node_sep),
        'rank_sep': str(settings.rank_sep),
        'edge_sep': str(settings.edge_sep),
        'component_gap': str(settings.component_gap),
        'table_width': str(settings.table_width),
        constants.CONFIG_KEY_PRESERVE_POSITIONS: str(settings.preserve_positions),
    }
    config['DefaultTableColors'] = {'color_hex': settings.default_table_color}

    types_to_save = settings.column_data_types or constants.DEFAULT_COLUMN_DATA_TYPES[:]
    config['ColumnDataTypes'] = {'types': '\n'.join(types_to_save)}

    config['Assistant'] = {
        'model': settings.assistant_model,
        'base_url': settings.assistant_base_url,
        'api_key_env': settings.assistant_api_key_env,
        'temperature': str(settings.assistant_temperature),
    }

    try:
        with open(path, 'w', encoding='utf-8') as configfile:
            config.write(configfile)
    except OSError as e:
        logger.error("Error saving settings to %s: %s", path, e)
        return False
    logger.info("Settings saved to %s", path)
    return True
