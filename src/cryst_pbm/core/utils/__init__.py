"""
Utility functions for cryst-pbm.

Includes:
- result_manager: Timestamped result saving and loading
- run_logger: Per-stop solver diagnostics
- config_loader: YAML configuration management
- helper_functions: Quadrature and seed-distribution utilities
"""

# Result management
from .result_manager import ResultManager, save_run, load_run
from .run_logger import RunLogger

# Config loader
from .config_loader import (
    load_config,
    load_yaml,
    validate_config,
    get_config_value,
    merge_configs,
    save_config,
    load_case_config,
    get_default_crystallization_config,
    validate_crystallization_config,
    build_distribution,
    crystallizer_properties,
    ConfigurationError
)

# Helper functions
from .helper_functions import (
    trapezoid_weights,
    trapz,
    tail_trapz,
    delta_peak,
)

__all__ = [
    'ResultManager',
    'save_run',
    'load_run',
    'RunLogger',
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
    'ConfigurationError',
    'trapezoid_weights',
    'trapz',
    'tail_trapz',
    'delta_peak',
]
