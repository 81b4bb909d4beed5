# utils/retry_handler.py
import asyncio
import random
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from utils.logger import setup_logger
from core.exceptions import DNSResolutionError

logger = setup_logger("retry_handler")

T = TypeVar("T")


class RetryConfig:
    """Configuração para retry"""
    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        exceptions: Tuple[Type[Exception], ...] = (DNSResolutionError,)
    ):
        if max_retries < 0:
            raise ValueError("max_retries não pode ser negativo")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.exceptions = exceptions


def calculate_backoff(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float,
    jitter: bool
) -> float:
    """Calcula o tempo de backoff com jitter opcional"""
    delay = min(base_delay * (exponential_base ** attempt), max_delay)

    if jitter:
        # Adiciona jitter entre 0% e 25% do delay
        delay += delay * 0.25 * random.random()

    return delay


async def retry_async(config: RetryConfig, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
    """
    Executa func com até config.max_retries novas tentativas.

    Só as exceções listadas em config.exceptions disparam nova tentativa;
    a última é relançada quando as tentativas se esgotam.
    """
    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except config.exceptions as e:
            if attempt == config.max_retries:
                logger.debug(f"Máximo de tentativas atingido para {func.__name__}: {e}")
                raise

            delay = calculate_backoff(
                attempt,
                config.base_delay,
                config.max_delay,
                config.exponential_base,
                config.jitter
            )
            logger.debug(
                f"Tentativa {attempt + 1}/{config.max_retries} falhou para {func.__name__}: {e}. "
                f"Aguardando {delay:.2f}s antes de tentar novamente..."
            )
            await asyncio.sleep(delay)

