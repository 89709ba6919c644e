"""Custom exceptions for the BarberPro application."""

class BarberProError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Ocorreu um erro interno", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(BarberProError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(BarberProError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Recurso não encontrado", payload=None):
        super().__init__(message, 404, payload)

class InvalidSlotError(BusinessLogicError):
    """Requested time is outside working hours or off the slot grid. Never retried."""
    def __init__(self, message="Horário inválido", payload=None):
        super().__init__(message, status_code=422, payload=payload)

class ConflictError(BusinessLogicError):
    """Lost the race for a slot: another booking already holds it."""
    def __init__(self, message="Este horário acabou de ser reservado. Escolha outro horário.", payload=None):
        super().__init__(message, status_code=409, payload=payload)

class UnauthorizedError(BarberProError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Acesso não autorizado"):
        super().__init__(message, 403)
