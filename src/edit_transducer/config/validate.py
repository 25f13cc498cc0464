"""Environment validation for Edit Transducer dependencies."""

import sys
import warnings
from importlib import import_module
from typing import Dict
from packaging import version

# Import name -> (distribution name, purpose)
CORE_PACKAGES = {
    'numpy': ('numpy', "lattice and probability tables"),
    'scipy': ('scipy', "entropy diagnostics"),
    'yaml': ('PyYAML', "YAML configuration files"),
}
OPTIONAL_PACKAGES = {
    'matplotlib': ('matplotlib', "training plots"),
    'seaborn': ('seaborn', "edit probability heatmaps"),
}


def _installed_version(module_name: str) -> str:
    module = import_module(module_name)
    return getattr(module, '__version__', 'unknown')


def check_environment(min_numpy: str = "1.24", min_scipy: str = "1.10") -> None:
    """Check that the environment meets minimum dependency requirements.

    Parameters
    ----------
    min_numpy : str, default="1.24"
        Minimum required NumPy version
    min_scipy : str, default="1.10"
        Minimum required SciPy version

    Raises
    ------
    RuntimeError
        If any requirement is not met; the message lists every failure

    Examples
    --------
    >>> check_environment(min_numpy="1.20")
    """
    errors = []
    minimums = {'numpy': min_numpy, 'scipy': min_scipy}

    if sys.version_info < (3, 8):
        errors.append(f"Python 3.8+ required, found {sys.version_info.major}.{sys.version_info.minor}")

    for module_name, (dist_name, purpose) in CORE_PACKAGES.items():
        try:
            found = _installed_version(module_name)
        except ImportError:
            errors.append(f"{dist_name} not installed - required for {purpose}")
            continue
        minimum = minimums.get(module_name)
        if minimum is not None and version.parse(found) < version.parse(minimum):
            errors.append(f"{dist_name} {minimum}+ required, found {found}")

    optional_warnings = []
    for module_name, (dist_name, purpose) in OPTIONAL_PACKAGES.items():
        try:
            _installed_version(module_name)
        except ImportError:
            optional_warnings.append(f"{dist_name} not found - required for {purpose}")

    if errors:
        error_msg = "Environment validation failed:\n" + "\n".join(f"  - {err}" for err in errors)
        if optional_warnings:
            error_msg += "\n\nWarnings:\n" + "\n".join(f"  - {warn}" for warn in optional_warnings)
        error_msg += "\n\nTo install required dependencies:\n  pip install -e ."
        raise RuntimeError(error_msg)

    if optional_warnings:
        warning_msg = "Environment warnings:\n" + "\n".join(f"  - {warn}" for warn in optional_warnings)
        warnings.warn(warning_msg, UserWarning)


def get_dependency_versions() -> Dict[str, str]:
    """Versions of Python and every dependency, 'not installed' when missing."""
    versions = {
        'python': f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    }

    for module_name, (dist_name, _) in {**CORE_PACKAGES, **OPTIONAL_PACKAGES}.items():
        try:
            versions[dist_name] = _installed_version(module_name)
        except ImportError:
            versions[dist_name] = 'not installed'

    try:
        versions['packaging'] = _installed_version('packaging')
    except ImportError:
        versions['packaging'] = 'not installed'

    # TOML support
    try:
        import_module('tomllib')
        versions['tomllib'] = 'built-in (3.11+)'
    except ImportError:
        try:
            versions['tomli'] = _installed_version('tomli')
        except ImportError:
            versions['tomli'] = 'not installed'

    try:
        versions['tomli_w'] = _installed_version('tomli_w')
    except ImportError:
        versions['tomli_w'] = 'not installed'

    return versions


def print_environment_info() -> None:
    """Print dependency versions grouped by role."""
    versions = get_dependency_versions()

    print("Edit Transducer - Environment Information")
    print("=" * 42)

    groups = [
        ("Core Dependencies", ['python', 'numpy', 'scipy']),
        ("Visualization", ['matplotlib', 'seaborn']),
        ("Configuration", ['PyYAML', 'packaging', 'tomllib', 'tomli', 'tomli_w']),
    ]
    for title, packages in groups:
        print(f"\n{title}:")
        for pkg in packages:
            if pkg in versions:
                print(f"  {pkg:12}: {versions[pkg]}")

    print("\nSystem Information:")
    print(f"  Platform     : {sys.platform}")
    print(f"  Architecture : {'64-bit' if sys.maxsize > 2**32 else '32-bit'}")
