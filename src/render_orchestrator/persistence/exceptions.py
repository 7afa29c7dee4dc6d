"""
Persistence-layer exceptions.

Storage failures are reported with the failing statement and its
parameters so they can be told apart from "not found" and from generation
failures.
"""

from typing import Any, Sequence


class DatabaseError(Exception):
    """
    Raised when the prompt cache store fails.

    Attributes:
        statement: The storage command that failed (e.g. "HGETALL")
        params: Arguments the command was called with
    """

    def __init__(self, message: str, statement: str, params: Sequence[Any] = ()):
        super().__init__(message)
        self.message = message
        self.statement = statement
        self.params = tuple(params)
        self.details = {"statement": statement, "params": [str(p) for p in self.params]}

    def __str__(self) -> str:
        return f"{self.message} | Statement: {self.statement} {list(self.params)}"
