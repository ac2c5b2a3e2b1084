import logging

def setup_logging(level: str = "INFO"):
    levelno = getattr(logging, str(level).upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    # force: main() may run more than once in one process
    logging.basicConfig(level=levelno, format=fmt, force=True)
