# sleep_impact/utils/logging_config.py
import logging
from typing import Optional, Union

from sleep_impact.utils.settings import get_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Third-party loggers that flood INFO during fitting and plotting
_NOISY_LOGGERS = ('tensorflow', 'matplotlib', 'absl')

_configured = False


def configure_logging(level: Optional[Union[str, int]] = None) -> None:
    """Configure root logging once for the whole run."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    logging.basicConfig(level=log_level, format=LOG_FORMAT)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
