import typer
import asyncio
import ipaddress
import logging
import random
import sys
from functools import wraps
from pathlib import Path
from typing import Optional, List
from typing_extensions import Annotated
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config import config
from core.exceptions import (
    NSECWalkError,
    DNSResolutionError,
    InvalidConfigurationError,
    InputReadError,
)
from core.discovery import discover_endpoints, discover_nameservers
from core.listener import WalkListener
from core.recorder import ChainRecorder
from core.resolver import DNSGateway
from core.session import walk_domains
from core.walker import NSECWalker, WalkResult, WalkStatus, is_apex_sentinel, never_terminal
from utils.domain import clean_domain, validate_domain
from utils.enhanced_logger import setup_enhanced_logger, attach_console_handler, OperationLogger
from utils.input_loader import load_domains

app = typer.Typer(help="nsecwalk - enumeração de zonas DNS via NSEC walking")
console = Console(highlight=False, soft_wrap=True)

logger = setup_enhanced_logger(
    "cli",
    log_file="logs/cli_operations.log" if "--debug" in sys.argv else None,
    console_output="--debug" in sys.argv
)

DEBUG_LOGGERS = ("cli", "resolver", "walker", "discovery", "recorder", "retry_handler")


def handle_specific_errors(func):
    """Decorator para tratamento específico de erros na CLI"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InputReadError as e:
            logger.error(f"Erro de entrada: {e.message}", extra={"extra_data": {"error_type": "input"}})
            console.print(f"[red]Erro: Falha ao ler a entrada - {escape(e.message)}[/]")
            raise typer.Exit(1)
        except InvalidConfigurationError as e:
            logger.error(f"Configuração inválida: {e.message}", extra={"extra_data": {"error_type": "config"}})
            console.print(f"[red]Erro: Configuração inválida - {escape(e.message)}[/]")
            raise typer.Exit(1)
        except DNSResolutionError as e:
            logger.error(f"Erro de resolução DNS: {e.message}", extra={"extra_data": {"error_type": "resolution"}})
            console.print(f"[red]Erro: Falha na resolução DNS - {escape(e.message)}[/]")
            raise typer.Exit(1)
        except NSECWalkError as e:
            logger.error(f"Erro do nsecwalk: {e.message}", extra={"extra_data": {"error_type": "generic"}})
            console.print(f"[red]Erro: {escape(e.message)}[/]")
            raise typer.Exit(1)
        except KeyboardInterrupt:
            logger.info("Operação cancelada pelo usuário")
            console.print("\n[yellow]Operação cancelada pelo usuário[/]")
            raise typer.Exit(0)
    return wrapper


def validate_ip(ip: str) -> bool:
    """Valida se é um endereço IP válido"""
    try:
        ipaddress.ip_address(ip)
        return True
    except ValueError:
        raise InvalidConfigurationError(f"Endereço IP inválido: {ip}")


class ConsoleListener(WalkListener):
    """Exibe o progresso de cada caminhada no console"""

    def __init__(self, recorder: Optional[ChainRecorder] = None):
        self.recorder = recorder

    def nameservers_found(self, domain, nameservers):
        console.print(f"[magenta]Nameservers para [cyan]{escape(domain)}[/]")
        if nameservers:
            console.print(f"    [blue]{len(nameservers)} encontrados para [cyan]{escape(domain)}[/]")

    def nameserver_addresses(self, domain, nameserver, addresses):
        console.print(f"        [magenta]IPs para [purple]{escape(nameserver)}[/]")
        if addresses:
            console.print(f"            [blue]{len(addresses)} IPs para [purple]{escape(nameserver)}[/]")
        else:
            console.print(f"            [dim]Nenhum para [purple]{escape(nameserver)}[/]")

    def walk_started(self, domain, endpoint, pool_size):
        console.print(f"    [blue]{pool_size} IPs para [cyan]{escape(domain)}[/]")

    def record_found(self, domain, endpoint, next_name):
        console.print(
            f"        [green]NSEC para [cyan]{escape(domain)}[/] de [purple]{escape(endpoint.name)}[/] "
            f"[dim]({endpoint.ip})[/]: [yellow]{escape(next_name)}[/]"
        )

    def endpoint_dropped(self, domain, endpoint, remaining):
        console.print(
            f"        [red]Falha com [purple]{escape(endpoint.name)}[/] [dim]({endpoint.ip})[/] "
            f"para [cyan]{escape(domain)}[/] ({remaining} restantes)"
        )

    def walk_finished(self, result: WalkResult):
        domain = escape(result.domain)
        if result.status == WalkStatus.NO_NAMESERVERS:
            console.print(f"    [dim]Nenhum nameserver para [cyan]{domain}[/]")
        elif result.status == WalkStatus.NO_IPS:
            console.print(f"    [dim]Nenhum IP de nameserver para [cyan]{domain}[/]")
        elif result.status == WalkStatus.ENDPOINTS_EXHAUSTED:
            console.print(
                f"[dim]Sem nameservers/IPs restantes para [cyan]{domain}[/] "
                f"({result.discovered_count} registros NSEC antes da falha)"
            )
        elif result.found_records:
            saved = f" [dim]-> {escape(str(self.recorder.path_for(result.domain)))}[/]" if self.recorder else ""
            console.print(f"[green]{result.discovered_count} registros NSEC para [cyan]{domain}[/]{saved}")
        else:
            console.print(
                f"[red]Nenhum registro NSEC para [cyan]{domain}[/] "
                f"de [purple]{escape(str(result.last_endpoint))}[/]"
            )


def read_domains(domain: Optional[str], input_file: Optional[Path]) -> List[str]:
    """Domínio único, arquivo de lista ou entrada padrão (uma linha por domínio)"""
    if domain:
        domain = clean_domain(domain)
        validate_domain(domain)
        return [domain]

    if input_file is not None:
        try:
            with open(input_file, encoding="utf-8") as f:
                candidates = load_domains(f)
        except OSError as e:
            raise InputReadError(f"Não foi possível abrir {input_file}: {e}", original_error=e)
    else:
        candidates = load_domains(sys.stdin)

    domains = []
    for candidate in candidates:
        try:
            validate_domain(candidate)
        except InvalidConfigurationError as e:
            console.print(f"[yellow]Ignorando: {escape(e.message)}[/]")
            continue
        domains.append(candidate)
    return domains


def display_summary(results: List[WalkResult]):
    """Tabela final quando mais de um domínio foi processado"""
    table = Table(title="Resumo", show_header=True, header_style="bold cyan")
    table.add_column("Domínio", style="cyan")
    table.add_column("Estado", style="magenta")
    table.add_column("Registros", style="green", justify="right")

    for result in results:
        table.add_row(result.domain, result.status.value, str(result.discovered_count))

    console.print()
    console.print(table)


@app.command()
@handle_specific_errors
def walk(
    domain: Annotated[Optional[str], typer.Argument(help="Domínio alvo (omita para ler da entrada padrão)")] = None,
    input_file: Annotated[Optional[Path], typer.Option("--input", "-i", help="Arquivo com um domínio por linha")] = None,
    output_dir: Annotated[str, typer.Option(help="Diretório dos arquivos nsec-<domínio>.txt")] = config.OUTPUT_DIR,
    timeout: Annotated[float, typer.Option(help="Timeout por consulta em segundos")] = config.TIMEOUT,
    retries: Annotated[int, typer.Option(min=0, help="Tentativas de transporte por consulta NSEC")] = config.NSEC_RETRIES,
    discovery_retries: Annotated[int, typer.Option(min=0, help="Tentativas de transporte para NS/A/AAAA")] = config.DISCOVERY_RETRIES,
    max_failures: Annotated[int, typer.Option(min=1, help="Falhas seguidas antes de descartar um endpoint")] = config.MAX_CONSECUTIVE_FAILURES,
    workers: Annotated[int, typer.Option(min=1, help="Domínios caminhados em paralelo")] = config.WORKERS,
    resolver: Annotated[Optional[str], typer.Option(help="Resolver (IP) para a descoberta de NS/IPs")] = None,
    seed: Annotated[Optional[int], typer.Option(help="Semente do sorteio de endpoints")] = None,
    no_sentinel: Annotated[bool, typer.Option("--no-sentinel", help="Não encerrar no próximo nome com rótulo NUL")] = False,
):
    """
    Percorre a cadeia NSEC de um ou mais domínios e grava os nomes encontrados.
    """
    with OperationLogger("walk_command", logger) as op_logger:
        if resolver:
            validate_ip(resolver)

        domains = read_domains(domain, input_file)
        op_logger.add_metric("domains", len(domains))
        if not domains:
            console.print("[yellow]Nenhum domínio para processar.[/]")
            return

        gateway = DNSGateway(
            timeout=timeout,
            discovery_retries=discovery_retries,
            nsec_retries=retries,
            default_server=resolver,
        )
        recorder = ChainRecorder(output_dir)
        listener = ConsoleListener(recorder)

        def make_walker() -> NSECWalker:
            return NSECWalker(
                gateway,
                recorder=recorder,
                listener=listener,
                rng=random.Random(seed) if seed is not None else None,
                max_failures=max_failures,
                is_terminal=never_terminal if no_sentinel else is_apex_sentinel,
            )

        results = asyncio.run(walk_domains(domains, make_walker, workers=workers))

        op_logger.add_metric("records_found", sum(r.discovered_count for r in results))
        if len(results) > 1:
            display_summary(results)


@app.command()
@handle_specific_errors
def nameservers(
    domain: Annotated[str, typer.Argument(help="Domínio alvo")],
    timeout: Annotated[float, typer.Option(help="Timeout por consulta em segundos")] = config.TIMEOUT,
    resolver: Annotated[Optional[str], typer.Option(help="Resolver (IP) para a descoberta")] = None,
):
    """Lista os endpoints (nameserver, IP) que seriam usados na caminhada."""
    with OperationLogger("nameservers_command", logger) as op_logger:
        domain = clean_domain(domain)
        validate_domain(domain)
        if resolver:
            validate_ip(resolver)

        gateway = DNSGateway(timeout=timeout, default_server=resolver)

        async def discover():
            names = await discover_nameservers(domain, gateway)
            return names, await discover_endpoints(domain, gateway, nameservers=names)

        names, endpoints = asyncio.run(discover())
        op_logger.add_metric("endpoints", len(endpoints))

        if not names:
            console.print(f"[red]Nenhum nameserver para {escape(domain)}[/]")
            return
        if not endpoints:
            console.print(f"[red]Nenhum IP para os {len(names)} nameservers de {escape(domain)}[/]")
            return

        table = Table(title=f"Endpoints de {domain}", show_header=True, header_style="bold cyan")
        table.add_column("Nameserver", style="magenta")
        table.add_column("IP", style="white")
        for endpoint in endpoints:
            table.add_row(endpoint.name, endpoint.ip)
        console.print(table)


@app.callback()
def main(
    debug: Annotated[bool, typer.Option("--debug", help="Ativar modo debug")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Modo silencioso")] = False,
):
    """nsecwalk - enumeração de zonas DNSSEC por NSEC walking"""
    if debug:
        for name in DEBUG_LOGGERS:
            attach_console_handler(logging.getLogger(name))
    else:
        # Bibliotecas não devem escrever no console do usuário
        logging.getLogger("dns").setLevel(logging.CRITICAL)
        logging.getLogger("asyncio").setLevel(logging.CRITICAL)
    if quiet:
        console.quiet = True


if __name__ == "__main__":
    app()
