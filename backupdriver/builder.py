# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Driver Builder - Functional builder pattern for configuration.

This module provides pure functions for building DriverConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict

from backupdriver.config import (
    DEFAULT_BINARY_NAME,
    DEFAULT_ENGINE_BINARY_ROOT,
    DriverConfig,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "engine_image": "",
        "execution_timeout_minutes": 1,
        "engine_binary_root": DEFAULT_ENGINE_BINARY_ROOT,
        "binary_name": DEFAULT_BINARY_NAME,
    }


def with_engine_image(config: ConfigDict, image: str) -> ConfigDict:
    """
    Set the engine image whose binary is executed.

    Args:
        config: Current configuration dictionary
        image: Engine image reference (e.g. 'longhornio/longhorn-engine:v1.6.0')

    Returns:
        New configuration dictionary with engine image set
    """
    return {**config, "engine_image": image}


def with_execution_timeout(config: ConfigDict, minutes: int) -> ConfigDict:
    """
    Set the bounded execution timeout used for reads and listings.

    Args:
        config: Current configuration dictionary
        minutes: Timeout in minutes

    Returns:
        New configuration dictionary with timeout set
    """
    if minutes < 1:
        raise ValueError(f"execution timeout must be >= 1 minute, got {minutes}")
    return {**config, "execution_timeout_minutes": minutes}


def with_engine_binary_root(config: ConfigDict, root: Path | str) -> ConfigDict:
    """
    Set the host directory that holds per-image engine binaries.

    Args:
        config: Current configuration dictionary
        root: Directory path

    Returns:
        New configuration dictionary with binary root set
    """
    path = Path(root) if isinstance(root, str) else root
    return {**config, "engine_binary_root": path}


def with_binary_name(config: ConfigDict, name: str) -> ConfigDict:
    """Set the binary file name inside each image directory."""
    return {**config, "binary_name": name}


def build_config(config_dict: ConfigDict) -> DriverConfig:
    """
    Validate and build an immutable DriverConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable DriverConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    if not config_dict.get("engine_image"):
        from backupdriver.exceptions import ConfigurationError

        raise ConfigurationError("engine_image is required")

    return DriverConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

        config = pipe(
            lambda c: with_engine_image(c, "engine:v1"),
            lambda c: with_execution_timeout(c, 5),
        )(create_empty_config())

    Args:
        *funcs: Builder functions to compose

    Returns:
        A single function that applies all functions in sequence
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def build_from_steps(*steps: BuilderFunc) -> DriverConfig:
    """
    Build config by applying a sequence of builder functions.

    Args:
        *steps: Builder functions to apply in sequence

    Returns:
        Validated, immutable DriverConfig instance
    """
    return build_config(pipe(*steps)(create_empty_config()))


def create_config(
    engine_image: str,
    *,
    execution_timeout_minutes: int | None = None,
    engine_binary_root: str | Path | None = None,
    binary_name: str | None = None,
) -> DriverConfig:
    """
    Create driver configuration from simple parameters.

    This is the recommended user-facing API for creating configurations.

    Args:
        engine_image: Default engine image (required)
        execution_timeout_minutes: Bounded timeout for reads (default: 1)
        engine_binary_root: Host directory of engine binaries
        binary_name: Binary file name (default: "longhorn")

    Returns:
        Validated, immutable DriverConfig instance

    Example:
        config = create_config(
            "longhornio/longhorn-engine:v1.6.0",
            execution_timeout_minutes=5,
        )
    """
    config_dict = with_engine_image(create_empty_config(), engine_image)

    if execution_timeout_minutes is not None:
        config_dict = with_execution_timeout(config_dict, execution_timeout_minutes)

    if engine_binary_root:
        config_dict = with_engine_binary_root(config_dict, engine_binary_root)

    if binary_name:
        config_dict = with_binary_name(config_dict, binary_name)

    return build_config(config_dict)
