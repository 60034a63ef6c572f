# config_manager/utils.py
import os
import re
from typing import Any, Dict

import chardet
import yaml
from loguru import logger
from pydantic import ValidationError

from .main import Config


def read_yaml(config_path: str) -> Dict[str, Any]:
    """
    Read the YAML configuration file with environment variable substitution
    and guessed encoding.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration data as a dictionary.

    Raises:
        FileNotFoundError: If the configuration file is not found.
        IOError: If the configuration file cannot be read.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    content = load_text_file_with_guess_encoding(config_path)
    if content is None:
        raise IOError(f"Failed to read configuration file: {config_path}")

    # ${VAR} -> environment value, left untouched when unset
    pattern = re.compile(r"\$\{(\w+)\}")

    def replacer(match):
        return os.getenv(match.group(1), match.group(0))

    content = pattern.sub(replacer, content)

    try:
        return yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.critical(f"Error parsing YAML file: {e}")
        raise e


def _format_validation_error(error: ValidationError) -> str:
    error_messages = []

    for err in error.errors():
        location = " -> ".join(str(loc) for loc in err["loc"])
        error_type = err["type"]
        msg = err["msg"]
        input_value = err.get("input", "N/A")

        if error_type == "missing":
            error_messages.append(f"  - '{location}': required field is missing")
        elif error_type in ("int_type", "int_parsing", "float_type", "float_parsing"):
            error_messages.append(
                f"  - '{location}': a number is required. Current value: {input_value}"
            )
        elif error_type in ("bool_type", "bool_parsing"):
            error_messages.append(
                f"  - '{location}': true/false is required. Current value: {input_value}"
            )
        elif error_type == "value_error":
            error_messages.append(f"  - '{location}': {msg}")
        elif "greater_than" in error_type or "less_than" in error_type:
            error_messages.append(f"  - '{location}': value out of range. {msg}")
        else:
            error_messages.append(f"  - '{location}': {msg} (type: {error_type})")

    return "\n".join(error_messages)


def validate_config(config_data: dict) -> Config:
    """
    Validate configuration data against the Config model.

    Raises:
        ValidationError: If validation fails. A readable summary is logged first.
    """
    try:
        return Config(**config_data)
    except ValidationError as e:
        formatted_errors = _format_validation_error(e)

        logger.critical(
            "\n"
            + "=" * 60
            + "\nConfiguration Validation Error\n"
            + "=" * 60
            + f"\n\nErrors found:\n{formatted_errors}\n\n"
            + "Fix the fields above in conf.yaml (see conf.example.yaml).\n"
            + "=" * 60
        )
        logger.debug(f"Original validation error: {e}")
        logger.debug(f"Configuration data keys: {list(config_data.keys())}")
        raise e


def load_config(config_path: str) -> Config:
    """Read and validate ``config_path``."""
    return validate_config(read_yaml(config_path))


def load_text_file_with_guess_encoding(file_path: str) -> str | None:
    """
    Load a text file with guessed encoding.

    Parameters:
    - file_path (str): The path to the text file.

    Returns:
    - str: The content of the text file or None if an error occurred.
    """
    encodings = ["utf-8", "utf-8-sig", "shift_jis", "cp932", "ascii"]

    for encoding in encodings:
        try:
            with open(file_path, "r", encoding=encoding) as file:
                return file.read()
        except UnicodeDecodeError:
            continue
    # Fall back to chardet when the common encodings fail
    try:
        with open(file_path, "rb") as file:
            raw_data = file.read()
        detected = chardet.detect(raw_data)
        if detected["encoding"]:
            return raw_data.decode(detected["encoding"])
    except (OSError, UnicodeDecodeError, LookupError) as e:
        logger.error(f"Error detecting encoding for config file {file_path}: {e}")
    return None
