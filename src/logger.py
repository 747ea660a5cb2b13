import logging

from rich.console import Console
from rich.logging import RichHandler

FORMAT = "%(message)s"

# TODO: set logging level from the user config once load_config grows a logging section
logging.basicConfig(
    level=logging.INFO,
    format=FORMAT,
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)],
)


class Logger:
    def __init__(
        self,
        name,
        level=logging.NOTSET,
        message_format=FORMAT,
        date_format="[%X]",
    ):
        self.log = logging.getLogger(name)
        self.log.setLevel(level)
        self.message_format = message_format
        self.date_format = date_format

    def debug(self, *msg: object, sep=" ") -> None:
        return self.logutil("debug", *msg, sep=sep)

    def info(self, *msg: object, sep=" ") -> None:
        return self.logutil("info", *msg, sep=sep)

    def warning(self, *msg: object, sep=" ") -> None:
        return self.logutil("warning", *msg, sep=sep)

    def error(self, *msg: object, sep=" ") -> None:
        return self.logutil("error", *msg, sep=sep)

    def critical(self, *msg: object, sep=" ") -> None:
        return self.logutil("critical", *msg, sep=sep)

    def logutil(self, method_type: str, *msg: object, sep=" ") -> None:
        func = getattr(self.log, method_type, None)
        if not func:
            raise AttributeError(f"Logger has no method {method_type}")
        # stacklevel points the record at the caller of info()/warning()/...
        return func(sep.join(map(str, msg)), stacklevel=3)


logger = Logger("omr_layout")
console = Console()
