"""
Contador sequencial global do processo, cíclico em [1000, 9999].
"""
import threading

MIN_AUTO_NUMBER = 1000
MAX_AUTO_NUMBER = 10000


class SequenceCounter:
    """
    Contador limitado com read-modify-write atômico.

    ``next()`` devolve o valor corrente e avança; ao atingir o limite
    superior volta para o inferior. Chamadas concorrentes nunca recebem o
    mesmo valor dentro de um ciclo.
    """

    def __init__(self, lower: int = MIN_AUTO_NUMBER, upper: int = MAX_AUTO_NUMBER):
        if lower >= upper:
            raise ValueError(f"intervalo inválido: [{lower}, {upper})")
        self.lower = lower
        self.upper = upper
        self._value = lower
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            value = self._value
            self._value = value + 1 if value + 1 < self.upper else self.lower
            return value

    @property
    def value(self) -> int:
        """Próximo valor a ser devolvido."""
        with self._lock:
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = self.lower


# Instância única do processo
sequence_counter = SequenceCounter()
