# core/errors.py


class DropdownTesterError(Exception):
    """Base class for failures raised by the combination tester."""


class OperationExhaustedError(DropdownTesterError):
    def __init__(self, operation_name: str, last_error: Exception = None, attempts: int = 0):
        self.operation_name = operation_name
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"{operation_name} failed after {attempts} attempts: {last_error}")


class NoDropdownsFoundError(DropdownTesterError):
    pass


class NoOptionsFoundError(DropdownTesterError):
    def __init__(self, dropdown_index: int):
        self.dropdown_index = dropdown_index
        super().__init__(f"No options for dropdown {dropdown_index + 1}")


class SelectionVerificationError(DropdownTesterError):
    def __init__(self, dropdown_index: int, expected: str, actual=None):
        self.dropdown_index = dropdown_index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Verification failed for dropdown {dropdown_index + 1}. Expected: {expected!r}, got: {actual!r}"
        )


class StaleSessionError(DropdownTesterError):
    """A browser call returned after its session was discarded."""


class CsvLoadError(DropdownTesterError):
    pass
