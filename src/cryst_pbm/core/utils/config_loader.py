"""
Configuration Loader for cryst-pbm.

Handles loading and validation of YAML configuration files for
crystallization runs. Provides defaults for optional parameters and turns a
configuration into :class:`~cryst_pbm.crystallization.crystallizer.Crystallizer`
properties.
"""

import os
from typing import Dict, Any, Optional, List

import numpy as np
import yaml
from scipy import stats

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.errors import ConfigurationError

_MISSING = object()

# Scalar process settings; YAML reads '1e-12' (no dot) as a string
_NUMERIC_KEYS = ('init_seed', 'init_massmedium', 'rhoc', 'kv', 'init_conc')


def _as_number(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    return value


def load_config(
    config_path: str,
    validate: bool = True,
    required_fields: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Load and validate a YAML configuration file.

    Args:
        config_path: Path to the YAML configuration file
        validate: Whether to validate required fields (default: True)
        required_fields: List of required field names. If None, uses default set.

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If validation fails or YAML is invalid

    Example:
        >>> config = load_config('configs/crystallization/cooling_config.yaml')
        >>> config['problem_type']
        'crystallization'
        >>> config['solver']['sol_method']
        'high-resolution'
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML file: {e}")

    if config is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")

    if validate:
        if required_fields is None:
            required_fields = ['problem_type', 'case_name']

        validate_config(config, required_fields)

    return config


def validate_config(
    config: Dict[str, Any],
    required_fields: List[str]
) -> None:
    """Validate that required fields are present in configuration.

    Args:
        config: Configuration dictionary to validate
        required_fields: List of required field names (supports nested fields with dots)

    Raises:
        ConfigurationError: If any required field is missing

    Example:
        >>> config = {'problem_type': 'crystallization', 'solver': {'sol_time': 100}}
        >>> validate_config(config, ['problem_type', 'solver.sol_time'])
        >>> validate_config(config, ['problem_type', 'missing_field'])
        Traceback (most recent call last):
        ...
        ConfigurationError: Missing required fields in configuration: missing_field
    """
    missing_fields = [
        field for field in required_fields
        if get_config_value(config, field, default=_MISSING) is _MISSING
    ]

    if missing_fields:
        raise ConfigurationError(
            f"Missing required fields in configuration: {', '.join(missing_fields)}"
        )


def get_config_value(
    config: Dict[str, Any],
    key: str,
    default: Any = None
) -> Any:
    """Get a configuration value with optional default.

    Supports nested keys with dot notation (e.g., 'process.rhoc').

    Example:
        >>> config = {'process': {'rhoc': 1e-12}}
        >>> get_config_value(config, 'process.rhoc')
        1e-12
        >>> get_config_value(config, 'process.kv', default=1.0)
        1.0
    """
    current = config
    try:
        for part in key.split('.'):
            current = current[part]
        return current
    except (KeyError, TypeError):
        return default


def merge_configs(
    base_config: Dict[str, Any],
    override_config: Dict[str, Any]
) -> Dict[str, Any]:
    """Merge two configurations, with override taking precedence.

    Performs deep merge for nested dictionaries.

    Example:
        >>> base = {'solver': {'sol_method': 'cd', 'sol_time': 100}}
        >>> merged = merge_configs(base, {'solver': {'sol_method': 'mp'}})
        >>> merged['solver']
        {'sol_method': 'mp', 'sol_time': 100}
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def save_config(
    config: Dict[str, Any],
    config_path: str,
    overwrite: bool = False
) -> None:
    """Save configuration dictionary to a YAML file.

    Raises:
        FileExistsError: If file exists and overwrite=False
    """
    if os.path.exists(config_path) and not overwrite:
        raise FileExistsError(
            f"Configuration file already exists: {config_path}. "
            "Set overwrite=True to replace it."
        )

    os.makedirs(os.path.dirname(config_path) or '.', exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def load_case_config(
    case_name: str,
    config_dir: str = "configs/crystallization"
) -> Dict[str, Any]:
    """Load a crystallization case configuration merged over the defaults.

    Args:
        case_name: Name of the case (e.g., 'cooling', 'cooling_config.yaml')
        config_dir: Directory containing crystallization configs

    Returns:
        Validated configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If validation fails
    """
    if case_name.endswith('.yaml'):
        case_name = case_name[:-len('.yaml')]
    if not case_name.endswith('_config'):
        case_name = f"{case_name}_config"

    config_path = os.path.join(config_dir, f"{case_name}.yaml")
    config = load_config(config_path, validate=True, required_fields=['problem_type', 'case_name'])
    config = merge_configs(get_default_crystallization_config(), config)
    validate_crystallization_config(config)
    return config


def get_default_crystallization_config() -> Dict[str, Any]:
    """Get default configuration template for crystallization runs.

    Example:
        >>> defaults = get_default_crystallization_config()
        >>> config = merge_configs(defaults, case_config)
    """
    return {
        'problem_type': 'crystallization',
        'case_name': 'default',

        'distribution': {
            'grid': {'start': 1.0, 'stop': 500.0, 'num': 200},
            'density': {'kind': 'normal', 'mean': 100.0, 'std': 20.0},
        },

        'process': {
            'init_conc': 1.0,
            'solubility': 1.0,
            'temperature': 25.0,
            'antisolvent': 0.0,
            'growth_rate': 1.0,
            'nucleation_rate': 0.0,
            'init_seed': None,
            'init_massmedium': 1000.0,
            'rhoc': 1e-12,
            'kv': 1.0,
        },

        'solver': {
            'sol_time': [0.0, 100.0],
            'sol_method': 'central-difference',
            'options': {
                'method': 'BDF',
                'rtol': 1e-6,
                'atol': 1e-9,
            },
        },

        'output': {
            'save_results': True,
            'save_plots': True,
            'plot_format': 'png',
            'plot_dpi': 300
        }
    }


def validate_crystallization_config(config: Dict[str, Any]) -> None:
    """Validate crystallization-specific configuration requirements.

    Raises:
        ConfigurationError: If configuration values are invalid
    """
    if config.get('problem_type') != 'crystallization':
        raise ConfigurationError(
            f"Expected problem_type='crystallization', got '{config.get('problem_type')}'"
        )

    grid = get_config_value(config, 'distribution.grid', {})
    if isinstance(grid, dict):
        start = grid.get('start', 0.0)
        stop = grid.get('stop', 0.0)
        num = grid.get('num', 0)
        if stop <= start:
            raise ConfigurationError(f"grid stop ({stop}) must be greater than start ({start})")
        if num < 2:
            raise ConfigurationError(f"grid needs at least 2 points, got {num}")

    process = config.get('process', {})
    for key in ('rhoc', 'kv'):
        value = _as_number(process.get(key, 1.0))
        if not isinstance(value, (int, float)) or value <= 0:
            raise ConfigurationError(f"{key} must be a positive number, got {value}")
    mass = _as_number(process.get('init_massmedium', 1.0))
    if not isinstance(mass, (int, float)) or mass < 0:
        raise ConfigurationError(f"init_massmedium must be non-negative, got {mass}")

    sol_time = get_config_value(config, 'solver.sol_time')
    if sol_time is None:
        raise ConfigurationError("solver.sol_time is required")
    times = np.atleast_1d(_time_vector(sol_time))
    if times.size > 1 and np.any(np.diff(times) <= 0):
        raise ConfigurationError("solver.sol_time must be strictly increasing")

    dpi = _as_number(get_config_value(config, 'output.plot_dpi', 300))
    if not isinstance(dpi, (int, float)) or dpi <= 0:
        raise ConfigurationError(f"output.plot_dpi must be a positive number, got {dpi}")


def _time_vector(spec):
    if isinstance(spec, dict):
        return np.linspace(spec.get('start', 0.0), spec['stop'], spec.get('num', 2))
    return np.asarray(spec, dtype=float)


def build_distribution(spec: Dict[str, Any]) -> Distribution:
    """Build a :class:`Distribution` from a configuration block.

    The grid is ``{start, stop, num}`` (linspace) or an explicit list. The
    density kinds are 'normal' (mean, std), 'lognormal' (s, scale),
    'uniform' (low, high), all via ``scipy.stats`` pdfs scaled by an
    optional 'total' number, or 'values' with an explicit list.

    Raises:
        ConfigurationError: For unknown density kinds or malformed blocks

    Example:
        >>> dist = build_distribution({'grid': {'start': 0, 'stop': 2, 'num': 50},
        ...                            'density': {'kind': 'normal', 'mean': 1, 'std': 0.1}})
        >>> len(dist)
        50
    """
    grid_spec = spec.get('grid', {'start': 0.0, 'stop': 1.0, 'num': 20})
    grid = _time_vector(grid_spec) if isinstance(grid_spec, dict) else np.asarray(grid_spec, dtype=float)

    density = dict(spec.get('density', {}))
    kind = density.pop('kind', 'normal')
    total = float(density.pop('total', 1.0))

    if kind == 'normal':
        frozen = stats.norm(loc=density.get('mean', 0.0), scale=density.get('std', 1.0))
    elif kind == 'lognormal':
        frozen = stats.lognorm(s=density.get('s', 0.5), scale=density.get('scale', 1.0))
    elif kind == 'uniform':
        low = density.get('low', 0.0)
        frozen = stats.uniform(loc=low, scale=density.get('high', 1.0) - low)
    elif kind == 'values':
        if 'values' not in density:
            raise ConfigurationError("density kind 'values' needs a 'values' list")
        return Distribution(grid, total * np.asarray(density['values'], dtype=float))
    else:
        raise ConfigurationError(
            f"Unsupported density kind: {kind}. "
            f"Must be one of: ['normal', 'lognormal', 'uniform', 'values']"
        )

    try:
        return Distribution(grid, lambda y: total * frozen.pdf(y))
    except ValueError as e:
        raise ConfigurationError(f"Invalid distribution grid: {e}")


def crystallizer_properties(config: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a configuration dictionary into Crystallizer properties."""
    properties: Dict[str, Any] = {}

    if 'distribution' in config:
        properties['init_dist'] = build_distribution(config['distribution'])

    process = config.get('process', {})
    names = {
        'init_conc': 'init_conc',
        'solubility': 'solubility',
        'temperature': 'temperature_profile',
        'antisolvent': 'antisolvent_profile',
        'growth_rate': 'growth_rate',
        'nucleation_rate': 'nucleation_rate',
        'init_seed': 'init_seed',
        'init_massmedium': 'init_massmedium',
        'rhoc': 'rhoc',
        'kv': 'kv',
    }
    solver = config.get('solver', {})
    # output times first so table profiles are extended to the right end time
    if 'sol_time' in solver:
        properties['sol_time'] = _time_vector(solver['sol_time'])
    for key, prop in names.items():
        if key in process:
            value = process[key]
            properties[prop] = _as_number(value) if key in _NUMERIC_KEYS else value
    if 'sol_method' in solver:
        properties['sol_method'] = solver['sol_method']
    if 'options' in solver:
        properties['sol_options'] = {
            key: value if key == 'method' else _as_number(value)
            for key, value in (solver['options'] or {}).items()
        }

    return properties


# Convenience function aliases
load_yaml = load_config


__all__ = [
    'load_config',
    'load_yaml',
    'validate_config',
    'get_config_value',
    'merge_configs',
    'save_config',
    'load_case_config',
    'get_default_crystallization_config',
    'validate_crystallization_config',
    'build_distribution',
    'crystallizer_properties',
    'ConfigurationError'
]
