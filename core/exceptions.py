"""
Exceções customizadas para o nsecwalk
"""

class NSECWalkError(Exception):
    """Classe base para todas as exceções do nsecwalk"""
    def __init__(self, message: str, original_error: Exception = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

class DNSResolutionError(NSECWalkError):
    """Erro durante a resolução de DNS"""
    pass

class DNSTimeoutError(DNSResolutionError):
    """Timeout específico durante resolução de DNS"""
    def __init__(self, message: str, query_type: str, domain: str, timeout: float, original_error: Exception = None):
        self.query_type = query_type
        self.domain = domain
        self.timeout = timeout
        super().__init__(message, original_error)

class NameserverUnavailableError(DNSResolutionError):
    """Nenhum nameserver respondeu à consulta (SERVFAIL, REFUSED, conexão recusada)"""
    pass

class InvalidConfigurationError(NSECWalkError):
    """Erro de configuração inválida"""
    pass

class RecorderWriteError(NSECWalkError):
    """Falha ao gravar o arquivo de saída de um domínio"""
    def __init__(self, message: str, path: str, original_error: Exception = None):
        self.path = path
        super().__init__(message, original_error)

class InputReadError(NSECWalkError):
    """Erro ao ler a lista de domínios de entrada"""
    pass
