# config.py

class Config:
    """Valores padrão das políticas de consulta e de caminhada"""

    # Timeout por consulta (segundos)
    TIMEOUT = 10.0

    # Tentativas de transporte por consulta
    NSEC_RETRIES = 5
    DISCOVERY_RETRIES = 3

    # Falhas consecutivas antes de descartar um endpoint
    MAX_CONSECUTIVE_FAILURES = 3

    # Pausa base entre tentativas de transporte
    RETRY_DELAY = 0.5

    OUTPUT_DIR = "nwalk_out"

    # Domínios caminhados em paralelo no modo lista
    WORKERS = 1

config = Config()
