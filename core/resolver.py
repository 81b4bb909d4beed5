import dns.asyncresolver
import dns.exception
import dns.name
import dns.resolver
from typing import Callable, List, Optional

from config import config
from core.exceptions import (
    DNSResolutionError,
    DNSTimeoutError,
    InvalidConfigurationError,
    NameserverUnavailableError,
)
from utils.domain import normalize_name
from utils.enhanced_logger import setup_enhanced_logger, OperationLogger
from utils.retry_handler import RetryConfig, retry_async

logger = setup_enhanced_logger(
    "resolver",
    log_file="logs/dns_operations.log",
    level="DEBUG"  # Detalhes vão para o arquivo, nunca para o console do usuário
)

SUPPORTED_RECORD_TYPES = ("NS", "A", "AAAA", "NSEC")

ResolverFactory = Callable[[Optional[str]], dns.asyncresolver.Resolver]


def answer_token(rdata) -> str:
    """
    Primeiro token do texto de um rdata, normalizado.

    Para NS é o alvo, para A/AAAA o endereço e para NSEC o próximo nome
    (o bitmap de tipos é descartado).
    """
    fields = rdata.to_text().split()
    return normalize_name(fields[0]) if fields else ""


class DNSGateway:
    """
    Emite consultas DNS isoladas contra um servidor específico ou contra
    o resolver configurado no sistema.

    Falhas de transporte que sobrevivem a todas as tentativas, NXDOMAIN e
    respostas vazias viram uma lista vazia: quem chama só distingue
    "sem dados" de "inutilizável" pelo vazio.
    """

    def __init__(
        self,
        timeout: float = config.TIMEOUT,
        discovery_retries: int = config.DISCOVERY_RETRIES,
        nsec_retries: int = config.NSEC_RETRIES,
        retry_delay: float = config.RETRY_DELAY,
        default_server: Optional[str] = None,
        resolver_factory: Optional[ResolverFactory] = None,
    ):
        if timeout <= 0:
            raise InvalidConfigurationError(f"Timeout inválido: {timeout}")
        self.timeout = timeout
        self.default_server = default_server
        # Só timeouts e "nenhum nameserver respondeu" são repetidos
        transient = (DNSTimeoutError, NameserverUnavailableError)
        self.discovery_retry = RetryConfig(max_retries=discovery_retries, base_delay=retry_delay, exceptions=transient)
        self.nsec_retry = RetryConfig(max_retries=nsec_retries, base_delay=retry_delay, exceptions=transient)
        self.resolver_factory = resolver_factory or self._build_resolver

    def _build_resolver(self, server: Optional[str]) -> dns.asyncresolver.Resolver:
        if server:
            # Consulta direta ao servidor, ignorando /etc/resolv.conf
            resolver = dns.asyncresolver.Resolver(configure=False)
            resolver.nameservers = [server]
        else:
            resolver = dns.asyncresolver.Resolver()
        resolver.timeout = self.timeout
        resolver.lifetime = self.timeout
        return resolver

    async def _resolve_once(self, resolver, qname: dns.name.Name, record_type: str) -> List[str]:
        try:
            answers = await resolver.resolve(qname, record_type)
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
            logger.debug(f"Sem resposta para {qname} {record_type}")
            return []
        except dns.exception.Timeout as e:
            raise DNSTimeoutError(
                f"Timeout ao resolver {qname} {record_type}",
                query_type=record_type,
                domain=str(qname),
                timeout=self.timeout,
                original_error=e
            )
        except dns.resolver.NoNameservers as e:
            raise NameserverUnavailableError(f"Nenhum nameserver respondeu para {qname} {record_type}", original_error=e)
        except (dns.exception.DNSException, OSError) as e:
            raise DNSResolutionError(f"Erro ao resolver {qname} {record_type}: {e}", original_error=e)

        return [token for token in (answer_token(rdata) for rdata in answers) if token]

    async def query(self, name: str, record_type: str, server: Optional[str] = None) -> List[str]:
        """
        Consulta name/record_type em server (ou no resolver padrão).

        Retorna os tokens normalizados da resposta, ou [] em caso de falha.
        """
        record_type = record_type.upper()
        if record_type not in SUPPORTED_RECORD_TYPES:
            raise InvalidConfigurationError(f"Tipo de registro não suportado: {record_type}")
        try:
            qname = dns.name.from_text(name)
        except dns.exception.DNSException as e:
            raise InvalidConfigurationError(f"Nome DNS inválido: {name!r}", original_error=e)

        retry = self.nsec_retry if record_type == "NSEC" else self.discovery_retry
        target = server or self.default_server

        with OperationLogger(f"dns_query_{record_type}", logger) as op_logger:
            op_logger.add_metric("name", name)
            op_logger.add_metric("server", target or "system")
            try:
                resolver = self.resolver_factory(target)
                results = await retry_async(retry, self._resolve_once, resolver, qname, record_type)
            except dns.exception.DNSException as e:
                # Ex.: NoResolverConfiguration ao montar o resolver do sistema
                logger.warning(f"Não foi possível preparar o resolver para {name} {record_type}: {e}")
                return []
            except DNSResolutionError as e:
                attempts = retry.max_retries + 1 if isinstance(e, retry.exceptions) else 1
                logger.warning(
                    f"Consulta {record_type} para {name} falhou após {attempts} tentativa(s): {e.message}",
                    extra={"extra_data": {"server": target, "error_type": type(e).__name__}}
                )
                return []
            op_logger.add_metric("results_count", len(results))
            return results

    async def lookup_addresses(self, name: str) -> List[str]:
        """Consulta combinada A + AAAA; endereços IPv4 primeiro, na ordem recebida"""
        addresses = await self.query(name, "A")
        addresses += await self.query(name, "AAAA")
        return addresses

    async def next_secure(self, name: str, server: str) -> Optional[str]:
        """Próximo nome da cadeia NSEC de name segundo server, ou None"""
        answers = await self.query(name, "NSEC", server=server)
        return answers[0] if answers else None
