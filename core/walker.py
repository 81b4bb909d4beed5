import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from config import config
from core.discovery import NameserverEndpoint, discover_endpoints, discover_nameservers
from core.exceptions import InvalidConfigurationError
from core.listener import WalkListener
from core.recorder import ChainRecorder
from core.resolver import DNSGateway
from utils.domain import normalize_name
from utils.enhanced_logger import setup_enhanced_logger

logger = setup_enhanced_logger("walker", log_file="logs/walker.log", level="DEBUG")

# Rótulo NUL (\000) que alguns servidores usam como próximo nome no fim da zona
APEX_SENTINEL_LABEL = "\\000"


class WalkStatus(str, Enum):
    SUCCESS = "success"
    NO_NAMESERVERS = "no_nameservers"
    NO_IPS = "no_ips"
    ENDPOINTS_EXHAUSTED = "endpoints_exhausted"


class TerminationReason(str, Enum):
    WRAPPED = "wrapped"      # voltou ao domínio inicial
    STALLED = "stalled"      # o servidor devolveu o próprio nome atual
    SENTINEL = "sentinel"    # próximo nome começa com o rótulo NUL
    CYCLE = "cycle"          # próximo nome já visto nesta caminhada
    ABORTED = "aborted"


def is_apex_sentinel(name: str) -> bool:
    """Próximo nome cujo primeiro rótulo é o rótulo NUL"""
    first_label = name.split(".", 1)[0]
    return first_label in (APEX_SENTINEL_LABEL, "\x00")


def never_terminal(name: str) -> bool:
    return False


@dataclass
class WalkState:
    """Estado mutável de uma única caminhada; nunca compartilhado entre domínios"""
    start_domain: str
    current_name: str
    active_endpoint: NameserverEndpoint
    pool: List[NameserverEndpoint]
    consecutive_failures: int = 0
    discovered: List[str] = field(default_factory=list)
    seen: Set[str] = field(default_factory=set)

    @property
    def discovered_count(self) -> int:
        return len(self.discovered)


@dataclass
class WalkResult:
    domain: str
    status: WalkStatus
    reason: TerminationReason
    nameservers: List[str] = field(default_factory=list)
    endpoints: List[NameserverEndpoint] = field(default_factory=list)
    discovered: List[str] = field(default_factory=list)
    last_endpoint: Optional[NameserverEndpoint] = None

    @property
    def discovered_count(self) -> int:
        return len(self.discovered)

    @property
    def succeeded(self) -> bool:
        return self.status == WalkStatus.SUCCESS

    @property
    def found_records(self) -> bool:
        """Distingue a zona sem registros percorríveis de uma travessia completa"""
        return self.succeeded and self.discovered_count > 0


Outcome = Tuple[WalkStatus, TerminationReason]


class NSECWalker:
    """
    Máquina de estados que percorre a cadeia NSEC de um domínio.

    Cada passo consulta o NSEC do nome atual no endpoint ativo. Um endpoint
    que falha max_failures vezes seguidas sai do pool de vez e outro é
    sorteado; o nome atual só avança com uma resposta válida.
    """

    def __init__(
        self,
        gateway: DNSGateway,
        recorder: Optional[ChainRecorder] = None,
        listener: Optional[WalkListener] = None,
        rng: Optional[random.Random] = None,
        max_failures: int = config.MAX_CONSECUTIVE_FAILURES,
        is_terminal: Callable[[str], bool] = is_apex_sentinel,
    ):
        if max_failures < 1:
            raise InvalidConfigurationError(f"max_failures deve ser >= 1, recebido {max_failures}")
        self.gateway = gateway
        self.recorder = recorder
        self.listener = listener or WalkListener()
        self.rng = rng or random.Random()
        self.max_failures = max_failures
        self.is_terminal = is_terminal

    async def walk(self, domain: str) -> WalkResult:
        domain = normalize_name(domain)

        nameservers = await discover_nameservers(domain, self.gateway)
        self.listener.nameservers_found(domain, nameservers)
        if not nameservers:
            return self._finish(WalkResult(domain, WalkStatus.NO_NAMESERVERS, TerminationReason.ABORTED))

        endpoints = await discover_endpoints(domain, self.gateway, self.listener, nameservers=nameservers)
        if not endpoints:
            return self._finish(WalkResult(
                domain, WalkStatus.NO_IPS, TerminationReason.ABORTED, nameservers=nameservers
            ))

        state = self.start(domain, endpoints)
        self.listener.walk_started(domain, state.active_endpoint, len(state.pool))

        outcome = None
        while outcome is None:
            outcome = await self.step(state)

        status, reason = outcome
        return self._finish(WalkResult(
            domain,
            status,
            reason,
            nameservers=nameservers,
            endpoints=list(endpoints),
            discovered=list(state.discovered),
            last_endpoint=state.active_endpoint,
        ))

    def start(self, domain: str, endpoints: List[NameserverEndpoint]) -> WalkState:
        """Estado inicial com um endpoint sorteado do pool completo"""
        pool = list(endpoints)
        return WalkState(
            start_domain=domain,
            current_name=domain,
            active_endpoint=self.rng.choice(pool),
            pool=pool,
            seen={domain},
        )

    async def step(self, state: WalkState) -> Optional[Outcome]:
        """Executa um passo; retorna o desfecho se a caminhada terminou"""
        if not state.pool:
            return WalkStatus.ENDPOINTS_EXHAUSTED, TerminationReason.ABORTED

        endpoint = state.active_endpoint
        next_name = await self.gateway.next_secure(state.current_name, endpoint.ip)

        if next_name is None:
            return self._register_failure(state)

        state.consecutive_failures = 0
        next_name = normalize_name(next_name)

        if next_name == state.start_domain:
            return WalkStatus.SUCCESS, TerminationReason.WRAPPED
        if next_name == state.current_name:
            return WalkStatus.SUCCESS, TerminationReason.STALLED
        if self.is_terminal(next_name):
            return WalkStatus.SUCCESS, TerminationReason.SENTINEL
        if next_name in state.seen:
            logger.warning(f"Cadeia de {state.start_domain} voltou a {next_name} sem passar pelo início")
            return WalkStatus.SUCCESS, TerminationReason.CYCLE

        if self.recorder is not None:
            self.recorder.record(state.start_domain, next_name)
        state.discovered.append(next_name)
        state.seen.add(next_name)
        state.current_name = next_name
        self.listener.record_found(state.start_domain, endpoint, next_name)
        return None

    def _register_failure(self, state: WalkState) -> Optional[Outcome]:
        state.consecutive_failures += 1
        endpoint = state.active_endpoint
        logger.debug(
            f"NSEC de {state.current_name} falhou em {endpoint} "
            f"({state.consecutive_failures}/{self.max_failures})"
        )
        if state.consecutive_failures < self.max_failures:
            return None

        # Remove só este par (nome, IP); o mesmo IP sob outro nome continua no pool
        state.pool.remove(endpoint)
        self.listener.endpoint_dropped(state.start_domain, endpoint, len(state.pool))
        logger.info(f"Endpoint {endpoint} descartado para {state.start_domain}; restam {len(state.pool)}")
        if not state.pool:
            return WalkStatus.ENDPOINTS_EXHAUSTED, TerminationReason.ABORTED

        state.active_endpoint = self.rng.choice(state.pool)
        state.consecutive_failures = 0
        return None

    def _finish(self, result: WalkResult) -> WalkResult:
        logger.info(
            f"Caminhada de {result.domain} terminou: {result.status.value}/{result.reason.value}, "
            f"{result.discovered_count} registros"
        )
        self.listener.walk_finished(result)
        return result
