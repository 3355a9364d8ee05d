"""
Initializes the Dynaconf settings object for the installer.
This module is the single source of truth for all configuration.
"""

from pathlib import Path
from dynaconf import Dynaconf

PACKAGE_ROOT = Path(__file__).parent

settings = Dynaconf(
    root_path=PACKAGE_ROOT,
    settings_files=["config/settings.toml"],
    envvar_prefix="OTELCOL_INSTALLER",
    merge_enabled=True,
    environments=False,
    load_dotenv=False,
)
