from rich.logging import RichHandler
from rich.console import Console
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, Any
from logging.handlers import TimedRotatingFileHandler

LOG_DIR = Path("logs")
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class EnhancedLogger:
    """Logger com arquivo rotativo e saída opcional no console via Rich"""

    def __init__(
        self,
        name: str,
        level: str = "INFO",
        log_file: Optional[str] = None,
        verbose: bool = False,
        console_output: bool = False
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Não propaga para o logger raiz: a saída do usuário é feita pelo console da CLI
        self.logger.propagate = False
        self.logger.handlers.clear()

        if console_output:
            console_handler = RichHandler(
                console=Console(stderr=True),
                show_time=True,
                show_path=verbose,
                rich_tracebacks=True,
                tracebacks_show_locals=verbose,
                markup=False
            )
            console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
            self.logger.addHandler(console_handler)

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)

            # Rotação diária, mantém uma semana de histórico
            timed_handler = TimedRotatingFileHandler(
                log_file,
                when='midnight',
                interval=1,
                backupCount=7,
                encoding='utf-8',
                delay=True
            )
            timed_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            self.logger.addHandler(timed_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

    def get_logger(self) -> logging.Logger:
        return self.logger


def setup_enhanced_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    console_output: bool = False
) -> logging.Logger:
    """
    Função de conveniência para configurar um logger aprimorado.

    Sem arquivo explícito e sem console, grava em logs/<name>.log.
    """
    if log_file is None and not console_output:
        log_file = str(LOG_DIR / f"{name}.log")

    return EnhancedLogger(name, level, log_file, verbose, console_output).get_logger()


def attach_console_handler(logger: logging.Logger, verbose: bool = False):
    """Adiciona saída Rich no stderr a um logger já configurado (modo --debug)"""
    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return
    handler = RichHandler(console=Console(stderr=True), show_path=verbose, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False


class OperationLogger:
    """Logger especializado para operações com suporte a métricas"""

    def __init__(self, operation_name: str, logger: logging.Logger):
        self.operation_name = operation_name
        self.logger = logger
        self.start_time = None
        self.metrics = {}

    def __enter__(self):
        self.start_time = datetime.now()
        self.logger.debug(f"Iniciando operação: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = (datetime.now() - self.start_time).total_seconds()

        if exc_type:
            self.logger.error(
                f"Operação {self.operation_name} falhou após {duration:.2f}s: {exc_val}",
                extra={"extra_data": {
                    "operation": self.operation_name,
                    "duration": duration,
                    "error_type": exc_type.__name__,
                    "metrics": self.metrics
                }}
            )
        else:
            self.logger.debug(
                f"Operação {self.operation_name} concluída em {duration:.2f}s ({self.metrics})",
                extra={"extra_data": {
                    "operation": self.operation_name,
                    "duration": duration,
                    "metrics": self.metrics
                }}
            )

    def add_metric(self, key: str, value: Any):
        """Adiciona uma métrica à operação"""
        self.metrics[key] = value
