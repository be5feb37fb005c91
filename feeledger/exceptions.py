from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception"""
    pass


class NotFoundError(AppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(AppException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(AppException):
    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class InternalServerError(AppException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class PaymentGatewayError(AppException):
    """Pesapal rejected a request or could not be reached"""
    def __init__(self, detail="Payment gateway request failed"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class ReceiptDeliveryError(AppException):
    def __init__(self, detail: str = "Error sending email"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class MailboxConnectionError(AppException):
    """The notification mailbox could not be reached or refused the login"""
    def __init__(self, detail: str = "Mailbox unavailable"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
