import enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    # A domain precondition does not hold (already starred, own query, ...)
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    BAD_REQUEST = "BAD_REQUEST"
    DB_QUERY_ERROR = "DB_QUERY_ERROR"
    DB_INSERT_ERROR = "DB_INSERT_ERROR"
    DB_UPDATE_ERROR = "DB_UPDATE_ERROR"
    DB_DELETE_ERROR = "DB_DELETE_ERROR"
    DB_FETCH_ERROR = "DB_FETCH_ERROR"
    DB_RETRIEVAL_ERROR = "DB_RETRIEVAL_ERROR"

    @property
    def status_code(self):
        if self is ErrorCode.UNAUTHORIZED:
            return 401
        elif self is ErrorCode.NOT_FOUND:
            return 404
        elif self is ErrorCode.BAD_REQUEST:
            return 400
        elif self is ErrorCode.CONFLICT:
            return 409
        return 500


class ServiceResult(Generic[T]):
    """Outcome of a catalog operation.

    Every catalog operation hands back one of the two subclasses instead
    of raising, so callers branch on ``success`` and map failures to
    HTTP responses through ``status_code``.
    """
    success = False

    @property
    def status_code(self):
        raise NotImplementedError

    def to_json(self):
        raise NotImplementedError


class SuccessResult(ServiceResult[T]):
    success = True

    def __init__(self, data: T):
        self.data = data

    @property
    def status_code(self):
        return 200

    def to_json(self):
        return {
            'success': True,
            'data': self.data,
        }

    def __repr__(self):
        return "SuccessResult(%r)" % (self.data,)


class FailureResult(ServiceResult[Any]):
    success = False

    def __init__(self, message: str, code: ErrorCode, details: Optional[Any] = None):
        self.message = message
        self.code = ErrorCode(code)
        self.details = details

    @property
    def status_code(self):
        return self.code.status_code

    def to_json(self):
        output_data = {
            'success': False,
            'message': self.message,
            'code': self.code.value,
        }
        if self.details is not None:
            output_data['details'] = self.details
        return output_data

    def __repr__(self):
        return "FailureResult(%r, %s)" % (self.message, self.code.value)
