import logging

from . import config

ROOT_LOGGER = "backoffice"


def get_logger(name=ROOT_LOGGER):
    """Return a logger under the service's logger tree, configuring the root once."""
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        root.setLevel(config.settings.log_level)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        root.addHandler(ch)
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
