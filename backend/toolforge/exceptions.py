# backend/toolforge/exceptions.py
from typing import List

from fastapi import HTTPException, status


class CustomException(HTTPException):
    """Base class for custom exceptions."""
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)

    @property
    def message(self) -> str:
        return str(self.detail)

    def __str__(self) -> str:
        return self.message


class AuthenticationRequiredError(CustomException):
    def __init__(self, detail: str = "Please sign in to continue."):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class DescriptionRequiredError(CustomException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please provide a description of the tool you want to create.",
        )


class SchemaGenerationError(CustomException):
    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error generating tool schema: {reason}",
        )


class IncompleteSchemaError(ValueError):
    """Model output parsed but lacks one of the required top-level keys."""
    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Incomplete schema returned from model (missing: {', '.join(missing)}).")


class SqlExecutionError(CustomException):
    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to execute SQL: {reason}",
        )


class SqlRejectedError(CustomException):
    def __init__(self, statement: str, reason: str):
        self.statement = statement
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Generated SQL rejected ({reason}): {statement}",
        )


class BackendError(CustomException):
    def __init__(self, operation: str, reason: str):
        self.operation = operation
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to {operation}: {reason}",
        )


class ToolNotFoundError(CustomException):
    def __init__(self, tool_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tool {tool_id} not found or you don't have permission to view it.",
        )


class RecordValidationError(CustomException):
    def __init__(self, missing_fields: List[str]):
        self.missing_fields = missing_fields
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Missing required fields: {', '.join(missing_fields)}",
        )


class RecordNotFoundError(CustomException):
    def __init__(self, record_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Record {record_id} not found",
        )


class NoRecordsError(CustomException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No data available. Please add some data before generating a dashboard.",
        )


class DashboardGenerationError(CustomException):
    def __init__(self, reason: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error generating dashboard: {reason}",
        )
