"""
Tabela de registro dos metadados MDC (equivalente à anotação @MdcDot).

Chaves são nomes qualificados: ``"modulo.Tipo"`` para o nível de tipo e
``"modulo.Tipo.metodo"`` (ou ``"modulo.funcao"``) para o nível de método.
"""
import threading
from dataclasses import dataclass
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class MdcDot:
    """Metadado de interceptação: expressão bizCode avaliada sobre os argumentos."""
    biz_code: str = ""


class MdcRegistry:
    """Registro explícito, montado no startup, de métodos e tipos interceptados."""

    def __init__(self):
        self._methods: Dict[str, MdcDot] = {}
        self._types: Dict[str, MdcDot] = {}
        self._lock = threading.Lock()

    def register_method(self, qualname: str, dot: MdcDot) -> None:
        with self._lock:
            self._methods[qualname] = dot

    def register_type(self, qualname: str, dot: MdcDot) -> None:
        with self._lock:
            self._types[qualname] = dot

    def lookup(self, owner: Optional[str], method: str) -> Optional[MdcDot]:
        """
        Busca metadado para ``owner.method``.

        Metadado no método tem precedência sobre o do tipo.

        Args:
            owner: Nome qualificado do tipo (ou módulo, para funções livres)
            method: Nome do método/função
        """
        method_key = f"{owner}.{method}" if owner else method
        dot = self._methods.get(method_key)
        if dot is None and owner:
            dot = self._types.get(owner)
        return dot

    def load(self, mapping: Mapping[str, str], types: Mapping[str, str] = None) -> None:
        """Registra em lote: ``{"modulo.Tipo.metodo": "#expr"}`` e ``{"modulo.Tipo": "#expr"}``."""
        for qualname, biz_code in mapping.items():
            self.register_method(qualname, MdcDot(biz_code=biz_code))
        for qualname, biz_code in (types or {}).items():
            self.register_type(qualname, MdcDot(biz_code=biz_code))

    def clear(self) -> None:
        with self._lock:
            self._methods.clear()
            self._types.clear()

    def __len__(self) -> int:
        return len(self._methods) + len(self._types)


# Registro global do processo
mdc_registry = MdcRegistry()
