from typing import IO, List

from core.exceptions import InputReadError
from utils.domain import clean_domain


def load_domains(stream: IO[str]) -> List[str]:
    """
    Lê um domínio por linha até o fim do stream, ignorando linhas em
    branco e comentários.
    """
    try:
        lines = stream.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise InputReadError(f"Erro ao ler a lista de domínios: {e}", original_error=e)

    domains = []
    for line in lines:
        line = line.strip()
        if line and not line.startswith("#"):
            domains.append(clean_domain(line))
    return domains
