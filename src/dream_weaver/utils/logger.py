"""日志配置 - 基于 rich 的控制台日志"""

import logging

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "dream_weaver"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """配置应用主日志器

    重复调用只更新日志级别，不会叠加 handler。
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """获取子日志器，例如 dream_weaver.services.illustrator"""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
