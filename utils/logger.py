from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
import os, functools, re, time
from pathlib import Path

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "1048576"))
_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))

# 32-byte hex strings may be private keys; they are shortened before being logged.
_SECRET_KWARGS = {"private_key", "key", "seed", "master_seed"}
_HEX_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


class _LoggerManager:
    def __init__(self) -> None:
        self._configured = False
        self._module_handlers: dict[str, logging.Handler] = {}
        self._log_dir = os.getenv("LOG_DIR", "./logs")

    def _ensure(self) -> None:
        if self._configured:
            return

        level = getattr(logging, _DEFAULT_LEVEL, logging.INFO)
        fmt = logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

        root = logging.getLogger()
        root.setLevel(level)
        if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
            sh = logging.StreamHandler()
            sh.setLevel(level); sh.setFormatter(fmt)
            root.addHandler(sh)

        try:
            Path(self._log_dir).mkdir(parents=True, exist_ok=True)
        except OSError:
            # read-only filesystems still get console output
            self._log_dir = ""
        self._configured = True

    def setup_logger(self, name: str) -> logging.Logger:
        self._ensure()
        logger = logging.getLogger(name)

        if self._log_dir and name not in self._module_handlers:
            safe_name = name.replace(".", "_").replace("/", "_")
            file_path = os.path.join(self._log_dir, f"{safe_name}.log")
            try:
                fh = RotatingFileHandler(file_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
                fh.setLevel(getattr(logging, _DEFAULT_LEVEL, logging.INFO))
                fh.setFormatter(logging.Formatter(
                    fmt="%(asctime)s | %(levelname)s | %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S"
                ))
                self._module_handlers[name] = fh
                logger.addHandler(fh)
                logger.propagate = True
            except OSError as e:
                logging.getLogger(__name__).warning(f"No file handler for {name}: {e}")

        return logger

logger_manager = _LoggerManager()


def _redact(value):
    if isinstance(value, (bytes, bytearray)) and len(value) == 32:
        return "<redacted>"
    if isinstance(value, str) and _HEX_KEY_RE.match(value):
        return value[:6] + "…"
    return value


def log_function(func):
    """Trace entry, exit and failures of ``func`` at DEBUG level.

    Arguments that look like key material are redacted before formatting.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logger_manager.setup_logger(func.__module__)
        if logger.isEnabledFor(logging.DEBUG):
            shown_args = tuple(_redact(a) for a in args[1:]) if args and hasattr(args[0], func.__name__) else tuple(_redact(a) for a in args)
            shown_kwargs = {k: ("<redacted>" if k in _SECRET_KWARGS else _redact(v)) for k, v in kwargs.items()}
            logger.debug(f"→ {func.__name__} args={shown_args} kwargs={shown_kwargs}")
        t0 = time.time()
        try:
            result = func(*args, **kwargs)
            logger.debug(f"← {func.__name__} ({(time.time()-t0)*1000:.1f} ms)")
            return result
        except Exception as e:
            logger.warning(f"✗ {func.__name__}: {e}")
            raise
    return wrapper
