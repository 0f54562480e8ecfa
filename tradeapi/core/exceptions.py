from fastapi import HTTPException, status
from typing import Optional, Dict, Any

class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )

class UnsupportedAssetError(BaseAPIException):
    """Asset symbol outside the supported set"""
    def __init__(self, symbol: str):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="TRADE_001",
            message=f"Unsupported cryptocurrency: {symbol}",
            details={"symbol": symbol}
        )

class BelowMinimumError(BaseAPIException):
    """Trade value below the active fee policy minimum"""
    def __init__(self, minimum_amount: Any, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="TRADE_002",
            message=f"Minimum transaction amount is ₦{minimum_amount:,.2f}",
            details={"minimum_amount": str(minimum_amount), **(details or {})}
        )

class InsufficientFundsError(BaseAPIException):
    """Insufficient fiat wallet balance"""
    def __init__(self, message: str = "Insufficient wallet balance", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BALANCE_001",
            message=message,
            details=details
        )

class InsufficientAssetBalanceError(BaseAPIException):
    """Insufficient crypto holding balance"""
    def __init__(self, symbol: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BALANCE_002",
            message=f"Insufficient {symbol} balance",
            details={"symbol": symbol, **(details or {})}
        )

class RateUnavailableError(BaseAPIException):
    """Price oracle down, timed out or returned garbage"""
    def __init__(self, message: str = "Unable to fetch current exchange rate. Please try again later.", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="RATE_001",
            message=message,
            details=details
        )

class ConfigurationMissingError(BaseAPIException):
    """No active fee policy - operator error"""
    def __init__(self, name: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="CONFIG_001",
            message=f"Fee configuration not found: {name}",
            details={"name": name}
        )

class PersistenceFailureError(BaseAPIException):
    """The atomic unit could not commit"""
    def __init__(self, message: str = "Transaction could not be committed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="PERSIST_001",
            message=message,
            details=details
        )
