import re

import dns.exception
import dns.name

from core.exceptions import InvalidConfigurationError

# Um ou mais rótulos: TLDs como "se" ou "arpa" também são zonas percorríveis
LABEL = r'[a-z0-9_](?:[a-z0-9_-]{0,61}[a-z0-9_])?'
DOMAIN_PATTERN = re.compile(rf'^{LABEL}(?:\.{LABEL})*$')


def normalize_name(name: str) -> str:
    """Remove o ponto final (raiz) e converte para minúsculas"""
    name = name.strip().lower()
    if name != ".":
        name = name.rstrip(".")
    return name


def clean_domain(raw: str) -> str:
    """
    Normaliza um domínio informado pelo usuário.

    Remove espaços, esquema http(s)://, prefixo www., qualquer caminho
    após a primeira barra e o ponto final.
    """
    domain = raw.strip().lower()
    for prefix in ("http://", "https://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    if domain.startswith("www."):
        domain = domain[len("www."):]
    domain = domain.split("/", 1)[0]
    return normalize_name(domain)


def validate_domain(domain: str) -> bool:
    """Valida se o domínio tem formato válido (limites de tamanho conferidos pelo dnspython)"""
    if not DOMAIN_PATTERN.match(domain):
        raise InvalidConfigurationError(f"Domínio inválido: {domain!r}")
    try:
        dns.name.from_text(domain)
    except dns.exception.DNSException as e:
        raise InvalidConfigurationError(f"Domínio inválido: {domain!r} ({e})", original_error=e)
    return True
