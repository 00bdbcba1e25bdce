"""
Identidade do host (IPv4) e do processo (PID) usada na composição do trace id.
"""
import ipaddress
import os
import socket
import threading
from functools import lru_cache
from typing import Optional

from trace_mdc.core.exceptions import IdentityResolutionError
from trace_mdc.infrastructure.config.settings import get_settings

# Destino qualquer roteável; connect() em UDP não envia pacotes
_PROBE_ADDRESS = ("10.255.255.255", 1)

# Falha de resolução do IPv4, guardada para não repetir probe/DNS a cada trace id
_resolution_failure: Optional[str] = None
_resolution_lock = threading.Lock()


def _probe_outbound_ipv4() -> str | None:
    """IPv4 da interface de saída padrão."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(_PROBE_ADDRESS)
        return sock.getsockname()[0]
    except OSError:
        return None
    finally:
        sock.close()


@lru_cache()
def _resolve_uncached() -> str:
    override = get_settings().trace_host_ip
    if override:
        return override

    address = _probe_outbound_ipv4()
    if address and not address.startswith("127."):
        return address

    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError as e:
        if address:
            return address
        raise IdentityResolutionError("local IPv4", str(e)) from e


def resolve_local_ipv4() -> str:
    """
    Resolve o IPv4 local, uma única vez por processo.

    Ordem: TRACE_HOST_IP configurado -> interface de saída -> hostname.
    Tanto o sucesso quanto a falha ficam em cache: após uma falha as
    chamadas seguintes relançam o erro sem nova consulta de rede.

    Raises:
        IdentityResolutionError: se nenhum endereço puder ser resolvido
    """
    global _resolution_failure
    if _resolution_failure is not None:
        raise IdentityResolutionError("local IPv4", _resolution_failure)
    with _resolution_lock:
        if _resolution_failure is not None:
            raise IdentityResolutionError("local IPv4", _resolution_failure)
        try:
            return _resolve_uncached()
        except IdentityResolutionError as e:
            _resolution_failure = e.details.get("error", e.message)
            raise


def reset_identity_cache() -> None:
    """Descarta IPv4 (ou falha) em cache; a próxima chamada resolve de novo."""
    global _resolution_failure
    with _resolution_lock:
        _resolution_failure = None
        _resolve_uncached.cache_clear()


def convert_ip(ip: str) -> str:
    """
    Converte IPv4 para hexadecimal - 8 chars.

    Args:
        ip: 39.105.208.175

    Returns:
        2769d0af
    """
    try:
        address = ipaddress.IPv4Address(ip)
    except ValueError as e:
        raise IdentityResolutionError("local IPv4", f"endereço inválido: {ip!r}") from e
    return address.packed.hex()


def get_process_id() -> str:
    """
    PID atual com exatamente 5 dígitos (zero à esquerda).

    PIDs acima de 99999 mantêm os 5 dígitos menos significativos.
    """
    pid = os.getpid()
    try:
        value = int(pid)
    except (TypeError, ValueError) as e:
        raise IdentityResolutionError("process id", f"PID inválido: {pid!r}") from e
    return f"{value % 100000:05d}"
