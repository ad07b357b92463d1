from .errors import ServiceError, ValidationError, NotFound, Conflict
