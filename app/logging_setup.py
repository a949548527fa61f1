import logging
import sys


def setup_logging(level="INFO"):
    """Configure the root logger with a single stream handler.

    Safe to call more than once: existing handlers are replaced, so reloading
    the app in tests does not duplicate every line.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    # passlib logs a trapped bcrypt version lookup on first use
    logging.getLogger("passlib").setLevel(logging.ERROR)
