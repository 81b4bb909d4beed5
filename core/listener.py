from typing import List


class WalkListener:
    """
    Recebe os eventos de uma caminhada NSEC.

    Todos os métodos são no-op; a CLI sobrescreve os que quer exibir.
    O núcleo nunca formata texto para o usuário.
    """

    def nameservers_found(self, domain: str, nameservers: List[str]):
        pass

    def nameserver_addresses(self, domain: str, nameserver: str, addresses: List[str]):
        pass

    def walk_started(self, domain: str, endpoint, pool_size: int):
        pass

    def record_found(self, domain: str, endpoint, next_name: str):
        pass

    def endpoint_dropped(self, domain: str, endpoint, remaining: int):
        pass

    def walk_finished(self, result):
        pass
