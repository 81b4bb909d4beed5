from rich.logging import RichHandler
import logging

def setup_logger(name: str) -> logging.Logger:
    """Logger simples com saída Rich no stderr"""
    logging.basicConfig(
        level="WARNING",
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)]
    )
    return logging.getLogger(name)
