"""
Initializes the Dynaconf settings object for the dr_get_dicom component.
This module is the single source of truth for all configuration.
"""

from pathlib import Path
from dynaconf import Dynaconf

PACKAGE_ROOT = Path(__file__).parent

settings = Dynaconf(
    root_path=PACKAGE_ROOT,
    settings_files=["settings.toml"],
    envvar_prefix="DR_GET_DICOM",
    merge_enabled=True,
)
