#! .venv\Scripts\python.exe

"""
Solver configuration.

Settings are read from config.json and merged over the built-in defaults, so a
partial file only overrides the values it names.
"""

import copy
import json
import logging

# setup_logger reads its level from here, so this module uses a plain logger
logger = logging.getLogger("SolverConfig")

DEFAULT_CONFIG = {
    "arm": {"length": 2},
    "recipe": {"max_output_scale": 6},
    "buffer": {"max_stored_atoms": 5},
    "collision": {
        "hex_size_x": 82,
        "hex_size_y": 71,
        "atom_radius": 29,
        "arm_base_radius": 20,
    },
    "logging": {"level": "DEBUG", "directory": "logs"},
}


def _merge(base, override):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path="config.json"):
    """
    Load the configuration file.

    Args:
        path (str): Location of the JSON configuration

    Returns:
        dict: The defaults with every value found in the file applied on top
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    try:
        with open(path, "r") as file:
            return _merge(config, json.load(file))
    except FileNotFoundError:
        return config
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing error in {path}: {e}")
        return config
