"""
Catalog loader utility for EduLedger.

Loads curriculum definitions from YAML files in the catalog/ directory.
"""

from pathlib import Path
from typing import Any
import yaml

from eduledger.config import DEFAULT_CATALOG_DIR
from eduledger.schemas import Curriculum


# Default catalog directory (EDULEDGER_CATALOG_DIR, else catalog/ under the project root)
CATALOG_DIR = DEFAULT_CATALOG_DIR


def load_curriculum_data(name: str, catalog_dir: Path | None = None) -> dict[str, Any]:
    """
    Load the raw YAML definition of a curriculum.

    Args:
        name: Curriculum file name without .yaml extension (e.g., "english_general")
        catalog_dir: Optional custom catalog directory

    Raises:
        FileNotFoundError: If the curriculum file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    dir_path = catalog_dir or CATALOG_DIR
    file_path = dir_path / f"{name}.yaml"

    if not file_path.exists():
        raise FileNotFoundError(f"Curriculum definition not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_curriculum(name: str, catalog_dir: Path | None = None) -> Curriculum:
    """
    Load and validate a curriculum definition.

    The file stem is used as the curriculum id unless the YAML sets one.

    Raises:
        FileNotFoundError, yaml.YAMLError, pydantic.ValidationError
    """
    data = load_curriculum_data(name, catalog_dir)
    data.setdefault("id", name)
    return Curriculum.model_validate(data)


def load_catalog(catalog_dir: Path | None = None) -> list[Curriculum]:
    """Load every curriculum in the catalog directory, sorted by file name."""
    return [load_curriculum(name, catalog_dir) for name in get_available_curricula(catalog_dir)]


def get_available_curricula(catalog_dir: Path | None = None) -> list[str]:
    """
    List all available curriculum definitions.

    Returns:
        List of curriculum names (without .yaml extension)
    """
    dir_path = catalog_dir or CATALOG_DIR
    if not dir_path.exists():
        return []
    return sorted(p.stem for p in dir_path.glob("*.yaml"))
