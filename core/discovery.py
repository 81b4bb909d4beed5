from typing import List, NamedTuple, Optional

from core.listener import WalkListener
from core.resolver import DNSGateway
from utils.logger import setup_logger

logger = setup_logger("discovery")


class NameserverEndpoint(NamedTuple):
    """Par (nameserver, IP) consultável"""
    name: str
    ip: str

    def __str__(self):
        return f"{self.name} ({self.ip})"


async def discover_nameservers(domain: str, gateway: DNSGateway) -> List[str]:
    """Nameservers autoritativos do domínio, na ordem da resposta"""
    return await gateway.query(domain, "NS")


async def discover_endpoints(
    domain: str,
    gateway: DNSGateway,
    listener: Optional[WalkListener] = None,
    nameservers: Optional[List[str]] = None,
) -> List[NameserverEndpoint]:
    """
    Resolve cada nameserver do domínio para seus IPs e achata o resultado.

    A ordem dos nameservers e, dentro de cada um, a ordem dos IPs é
    preservada. Não há deduplicação: o mesmo IP sob dois nomes gera dois
    endpoints. Um nameserver sem IP é reportado e ignorado.
    """
    listener = listener or WalkListener()
    if nameservers is None:
        nameservers = await discover_nameservers(domain, gateway)

    endpoints: List[NameserverEndpoint] = []
    for ns in nameservers:
        addresses = await gateway.lookup_addresses(ns)
        listener.nameserver_addresses(domain, ns, addresses)
        if not addresses:
            logger.info(f"Nenhum IP para o nameserver {ns} de {domain}")
            continue
        endpoints.extend(NameserverEndpoint(ns, ip) for ip in addresses)

    return endpoints
