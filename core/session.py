import asyncio
from typing import Callable, Iterable, List

from core.walker import NSECWalker, WalkResult


async def walk_domains(
    domains: Iterable[str],
    walker_factory: Callable[[], NSECWalker],
    workers: int = 1,
) -> List[WalkResult]:
    """
    Caminha cada domínio de forma independente.

    Cada domínio recebe um walker novo, então nenhum estado é compartilhado;
    workers limita quantas caminhadas rodam ao mesmo tempo. Os resultados
    seguem a ordem da entrada.
    """
    semaphore = asyncio.Semaphore(max(1, workers))

    async def walk_single(domain: str) -> WalkResult:
        async with semaphore:
            return await walker_factory().walk(domain)

    return await asyncio.gather(*(walk_single(d) for d in domains))
