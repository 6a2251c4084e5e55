"""
Domain exceptions for the Academic Progression Engine
"""

class AcademicError(Exception):
    """Base class for errors surfaced to callers with a descriptive reason"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message

class NotFound(AcademicError):
    """Student, group, subject, assignment or submission does not exist"""
    pass

class ValidationError(AcademicError):
    """Input rejected before any state was changed"""
    pass

class MissingGroupContext(ValidationError):
    """A semester record has to be created but no cohort is known"""
    pass

class CapacityExceeded(AcademicError):
    """Target group has no free seat"""
    pass

class Conflict(AcademicError):
    """Duplicate assignment or a lost concurrent update"""
    pass
