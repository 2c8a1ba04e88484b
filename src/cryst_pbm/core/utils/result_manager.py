"""
Result Manager for cryst-pbm.

Handles timestamped saving and loading of simulation results including
distribution trajectories, run diagnostics, plots, and metadata.
"""

import os
import json
from datetime import datetime
from typing import Dict, List, Optional, Any

import numpy as np

from cryst_pbm.core.distribution import Distribution
from cryst_pbm.core.schemes.base_scheme import RunResult


def _next_run_path(directory: str, name: str) -> str:
    n = 1
    while os.path.exists(os.path.join(directory, f"{name}_no{n}.npz")):
        n += 1
    return os.path.join(directory, f"{name}_no{n}.npz")


def save_run(
    result: RunResult,
    directory: str = ".",
    name: str = "kitten",
    metadata: Optional[Dict[str, Any]] = None
) -> str:
    """Save a run to ``{directory}/{name}_no{n}.npz`` with the first free n.

    Snapshots may live on different grids (moving pivot), so all grids and
    densities are stored flat with an offsets vector.

    Args:
        result: Run to save
        directory: Target directory (created if missing)
        name: File name stem (default: 'kitten')
        metadata: JSON-serializable settings stored alongside

    Returns:
        Full path to saved file

    Example:
        >>> save_run(result, "runs")
        'runs/kitten_no1.npz'
        >>> save_run(result, "runs")
        'runs/kitten_no2.npz'
    """
    os.makedirs(directory, exist_ok=True)
    filepath = _next_run_path(directory, name)

    grids = [np.asarray(d.grid, dtype=float) for d in result.distributions]
    densities = [np.asarray(d.value_at(), dtype=float) for d in result.distributions]
    offsets = np.cumsum([0] + [g.size for g in grids])

    np.savez(
        filepath,
        times=np.asarray(result.times, dtype=float),
        concentrations=np.asarray(result.concentrations, dtype=float),
        medium_mass=np.asarray(result.medium_mass, dtype=float),
        grids=np.concatenate(grids),
        densities=np.concatenate(densities),
        offsets=offsets,
        scheme=np.array(result.scheme),
        metadata=np.array(json.dumps(metadata or {})),
    )
    return filepath


def load_run(filepath: str) -> RunResult:
    """Load a run written by :func:`save_run`.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Run file not found: {filepath}")

    with np.load(filepath) as data:
        offsets = data['offsets']
        grids = data['grids']
        densities = data['densities']
        distributions = tuple(
            Distribution(grids[a:b], densities[a:b])
            for a, b in zip(offsets[:-1], offsets[1:])
        )
        return RunResult(
            times=data['times'],
            distributions=distributions,
            concentrations=data['concentrations'],
            medium_mass=data['medium_mass'],
            scheme=str(data['scheme']),
            diagnostics={'metadata': json.loads(str(data['metadata']))},
        )


class ResultManager:
    """Manages timestamped saving and loading of crystallization results.

    Directory structure:
        results/{problem_type}/{case_name}/{timestamp}/
            ├── {name}_no1.npz
            ├── diagnostics.npz
            ├── metadata.json
            └── plots/
                ├── distributions.png
                └── mass_balance.png

    Attributes:
        base_dir: Root directory for all results
        problem_type: Type of problem (e.g., 'crystallization')
        case_name: Name of the specific case (e.g., 'nucleation_growth')
        timestamp: Current timestamp for this run
        save_dir: Full path to the timestamped save directory

    Example:
        >>> rm = ResultManager(problem_type='crystallization', case_name='cooling')
        >>> rm.save_run(result, name='cooling')
        >>> rm.save_metadata(config, {'max_mass_balance_error': 1e-8})
        >>> print(f"Results saved to: {rm.save_dir}")
    """

    def __init__(
        self,
        problem_type: str,
        case_name: str,
        base_dir: str = "results",
        timestamp: Optional[str] = None,
        create_dir: bool = True
    ):
        """Initialize the ResultManager.

        Args:
            problem_type: Type of problem (e.g., 'crystallization')
            case_name: Name of the case (e.g., 'growth_only')
            base_dir: Base directory for all results (default: 'results')
            timestamp: Custom timestamp string (default: auto-generated YYYYMMDD_HHMMSS)
            create_dir: Whether to create the directory immediately (default: True)
        """
        self.base_dir = base_dir
        self.problem_type = problem_type
        self.case_name = case_name

        if timestamp is None:
            self.timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        else:
            self.timestamp = timestamp

        self.save_dir = os.path.join(
            self.base_dir,
            self.problem_type,
            self.case_name,
            self.timestamp
        )

        if create_dir:
            self._create_directories()

    def _create_directories(self) -> None:
        """Create the save directory and its plots/ subdirectory."""
        os.makedirs(self.save_dir, exist_ok=True)
        os.makedirs(os.path.join(self.save_dir, "plots"), exist_ok=True)

    def save_run(
        self,
        result: RunResult,
        name: str = "kitten",
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """Save a run into this directory without overwriting earlier ones."""
        return save_run(result, self.save_dir, name, metadata)

    def load_run(self, filename: str) -> RunResult:
        """Load a run file from this directory."""
        return load_run(os.path.join(self.save_dir, filename))

    def save_diagnostics(
        self,
        diagnostics: Dict[str, List[float]],
        filename: str = "diagnostics.npz"
    ) -> str:
        """Save per-stop solver diagnostics (e.g. ``RunLogger.to_dict()``)."""
        filepath = os.path.join(self.save_dir, filename)
        np.savez(filepath, **{k: np.asarray(v) for k, v in diagnostics.items()})
        return filepath

    def load_diagnostics(self, filename: str = "diagnostics.npz") -> Dict[str, np.ndarray]:
        filepath = os.path.join(self.save_dir, filename)
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Diagnostics not found: {filepath}")

        with np.load(filepath) as data:
            return {key: data[key] for key in data.files}

    def save_metadata(
        self,
        config: Dict[str, Any],
        metrics: Optional[Dict[str, float]] = None,
        filename: str = "metadata.json"
    ) -> str:
        """Save run metadata and configuration.

        Args:
            config: Configuration dictionary
            metrics: Final metrics dictionary (mass balance, errors, ...), optional
            filename: Name of file to save (default: 'metadata.json')

        Returns:
            Full path to saved file
        """
        filepath = os.path.join(self.save_dir, filename)

        metadata = {
            'timestamp': self.timestamp,
            'problem_type': self.problem_type,
            'case_name': self.case_name,
            'config': config
        }

        if metrics is not None:
            metadata['metrics'] = metrics

        with open(filepath, 'w') as f:
            json.dump(metadata, f, indent=2, default=_json_default)

        return filepath

    def load_metadata(
        self,
        filename: str = "metadata.json"
    ) -> Dict[str, Any]:
        """Load run metadata.

        Raises:
            FileNotFoundError: If metadata file doesn't exist
        """
        filepath = os.path.join(self.save_dir, filename)
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Metadata not found: {filepath}")

        with open(filepath, 'r') as f:
            metadata = json.load(f)

        return metadata

    def get_plot_path(self, plot_name: str) -> str:
        """Get the full path for saving a plot.

        Example:
            >>> fig.savefig(rm.get_plot_path('distributions.png'), dpi=300)
        """
        return os.path.join(self.save_dir, "plots", plot_name)

    def list_saved_files(self) -> List[str]:
        """List all files saved in this run's directory (relative paths)."""
        all_files = []
        for root, _, files in os.walk(self.save_dir):
            for file in files:
                full_path = os.path.join(root, file)
                all_files.append(os.path.relpath(full_path, self.save_dir))
        return sorted(all_files)

    @staticmethod
    def list_all_runs(
        problem_type: str,
        case_name: str,
        base_dir: str = "results"
    ) -> List[str]:
        """List timestamps of all saved runs for a problem type and case, newest first."""
        case_dir = os.path.join(base_dir, problem_type, case_name)

        if not os.path.exists(case_dir):
            return []

        timestamps = [
            item for item in os.listdir(case_dir)
            if os.path.isdir(os.path.join(case_dir, item))
        ]
        return sorted(timestamps, reverse=True)

    def __repr__(self) -> str:
        return (f"ResultManager(problem_type='{self.problem_type}', "
                f"case_name='{self.case_name}', timestamp='{self.timestamp}')")

    def __str__(self) -> str:
        return f"ResultManager for {self.problem_type}/{self.case_name} [{self.timestamp}]"


def _json_default(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return str(value)


__all__ = ['ResultManager', 'save_run', 'load_run']
