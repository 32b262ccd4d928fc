"""EduLedger utilities."""

from .catalog_loader import load_curriculum, load_curriculum_data, load_catalog, get_available_curricula

__all__ = ["load_curriculum", "load_curriculum_data", "load_catalog", "get_available_curricula"]
