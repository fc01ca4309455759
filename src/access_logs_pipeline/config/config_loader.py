"""
Configuration value loading.

Supports loading flat key/value settings from:
1. A YAML file (optionally SOPS-encrypted, `*.enc.yaml`)
2. Environment variables
"""

import os
import subprocess
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

CONFIG_FILE_ENV_VAR = "PIPELINE_CONFIG_FILE"


def decrypt_sops_file(file_path: Path) -> Any:
    """
    Decrypt a SOPS-encrypted YAML config file and parse the plaintext.

    Raises:
        RuntimeError: If the sops binary is missing or refuses the file
    """
    command = ["sops", "--decrypt", "--output-type", "yaml", str(file_path)]
    try:
        completed = subprocess.run(command, capture_output=True, text=True, check=True)
    except FileNotFoundError as e:
        raise RuntimeError(
            f"sops is needed to read {file_path.name} but is not installed "
            "(https://github.com/getsops/sops/releases)"
        ) from e
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"Could not decrypt {file_path}: {e.stderr.strip()}") from e
    return yaml.safe_load(completed.stdout)


def is_sops_file(file_path: Path) -> bool:
    """Check if a config file is SOPS-encrypted by naming convention."""
    return ".enc." in file_path.name


def load_config_file(file_path: Path) -> dict[str, str]:
    """
    Load a flat YAML config file.

    Keys are upper-cased so they line up with the environment variable
    names; values are converted to strings.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file does not contain a mapping
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    if is_sops_file(file_path):
        data = decrypt_sops_file(file_path)
    else:
        with open(file_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {file_path} must contain a mapping")

    return {
        str(key).upper(): "" if value is None else str(value)
        for key, value in data.items()
    }


def load_config_values(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, str]:
    """
    Collect the flat configuration values for a function.

    Priority:
    1. Config file (explicit path or PIPELINE_CONFIG_FILE), if any
    2. Environment variables

    Args:
        config_path: Optional path to a YAML config file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Merged key/value mapping
    """
    env = dict(os.environ if environ is None else environ)
    values = dict(env)

    path = config_path
    if path is None and env.get(CONFIG_FILE_ENV_VAR):
        path = Path(env[CONFIG_FILE_ENV_VAR])

    if path is not None:
        values.update(load_config_file(Path(path)))

    return values
