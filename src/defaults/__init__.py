from .config import CONFIG_DEFAULTS, load_config  # noqa
