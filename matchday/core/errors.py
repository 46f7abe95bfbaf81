"""
Errori di dominio del motore match/MVP.
Ogni tipo porta lo status HTTP con cui viene esposto dal layer API.
"""

from typing import Any


class DomainError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    """Input malformato o fuori policy. Nessuna modifica di stato."""
    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Invariante bloccante: voto doppio, match già giocato, riferimenti attivi."""
    status_code = 409


class StorageError(DomainError):
    """Transazione fallita: l'operazione è stata annullata per intero."""
    status_code = 500
