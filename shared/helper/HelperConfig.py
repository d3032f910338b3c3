"""Central configuration helper for the plan retrieval service."""

import logging
import os
from collections.abc import Mapping

from shared.exceptions import ConfigurationError


class HelperConfig:
    """Central configuration helper.

    Reads all settings from a mapping of string keys, which defaults to the
    process environment. Passing an explicit mapping lets tests and embedding
    applications configure clients without touching os.environ.
    """

    def __init__(self, logger: logging.Logger, values: Mapping[str, str] | None = None) -> None:
        self._logger = logger
        self._values = values if values is not None else os.environ

    def _read(self, key: str) -> str | None:
        val = self._values.get(key.upper())
        if val is None or not str(val).strip():
            return None  # empty string → None
        return str(val).strip()

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string configuration value.

        Args:
            key (str): Configuration key (case-insensitive).
            default (str | None): Fallback value if the key is not set.

        Returns:
            str: The resolved value.

        Raises:
            ConfigurationError: If the key is not set and no default is provided.
        """
        key = key.upper()
        val = self._read(key)
        if val is None and default is None:
            raise ConfigurationError(f"Configuration key '{key}' is not set.")
        return val if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric configuration value.

        Args:
            key (str): Configuration key (case-insensitive).
            default (float | int | None): Fallback value if the key is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ConfigurationError: If the key is not set and no default is provided.
            ConfigurationError: If the value cannot be parsed as a number.
        """
        key = key.upper()
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ConfigurationError(f"Configuration key '{key}' is not set.")
            return default
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ConfigurationError(f"Configuration key '{key}' is not a valid number: '{raw}'.")

    def get_optional_number_val(self, key: str) -> float | int | None:
        """Read a numeric configuration value that may be absent.

        Returns:
            float | int | None: The parsed value, or None if the key is not set.
        """
        if self._read(key.upper()) is None:
            return None
        return self.get_number_val(key)

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean configuration value.

        Args:
            key (str): Configuration key (case-insensitive).
            default (bool | None): Fallback value if the key is not set.

        Returns:
            bool: The resolved boolean value.

        Raises:
            ConfigurationError: If the key is not set and no default is provided.
        """
        key = key.upper()
        raw = self._read(key)
        if raw is None:
            if default is None:
                raise ConfigurationError(f"Configuration key '{key}' is not set.")
            return default
        return raw.lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",", element_type: type = str) -> list:
        """Read a list configuration value in the form "[elem1,elem2,...]".

        Args:
            key (str): Configuration key (case-insensitive).
            default (list[str] | None): Fallback value if the key is not set.
            separator (str): The delimiter to split the string into a list.
            element_type (type): The type to which each element should be cast.

        Returns:
            list: The resolved list of elements.

        Raises:
            ConfigurationError: If the key is not set and no default is provided,
                or the value is malformed.
        """
        key = key.upper()
        raw_val = self._read(key)
        if raw_val is None:
            if default is None:
                raise ConfigurationError(f"Configuration key '{key}' is not set.")
            return default
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ConfigurationError(f"Configuration key '{key}' must be in the format '[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'")
        elements = [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]
        if not elements:
            return []
        try:
            return [element_type(elem) for elem in elements]
        except ValueError as e:
            raise ConfigurationError(f"Configuration key '{key}' contains invalid elements: {e}. Type set to {element_type.__name__}. Got: '{raw_val}'")

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
