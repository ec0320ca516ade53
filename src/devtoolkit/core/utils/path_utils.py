# src/devtoolkit/core/utils/path_utils.py
import logging
from pathlib import Path

from devtoolkit.core.managers.config_manager import config_manager

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving important package and user paths.
    """

    @staticmethod
    def get_package_root() -> Path:
        """Returns the directory of the installed 'devtoolkit' package."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_user_data_dir() -> Path:
        """
        Returns the directory holding the persistent storage tiers.
        Uses 'storage.dir' from the configuration when set, else ~/.devtoolkit/.
        """
        configured = config_manager.get_nested("storage.dir")
        if configured:
            return Path(configured).expanduser()
        return Path.home() / ".devtoolkit"
