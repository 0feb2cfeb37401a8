import grpc

from fastcv_payments.domain.exceptions import ErrorKind


ERROR_STATUS_MAP: dict[ErrorKind, grpc.StatusCode] = {
    ErrorKind.INVALID_AMOUNT: grpc.StatusCode.INVALID_ARGUMENT,
    ErrorKind.CURRENCY_MISMATCH: grpc.StatusCode.INVALID_ARGUMENT,
    ErrorKind.DIVISION_BY_ZERO: grpc.StatusCode.INVALID_ARGUMENT,
    ErrorKind.INVALID_INPUT: grpc.StatusCode.INVALID_ARGUMENT,
    ErrorKind.UNSUPPORTED_PROVIDER: grpc.StatusCode.INVALID_ARGUMENT,
    ErrorKind.NOT_FOUND: grpc.StatusCode.NOT_FOUND,
    ErrorKind.INVALID_TRANSITION: grpc.StatusCode.FAILED_PRECONDITION,
    ErrorKind.CONCURRENT_UPDATE: grpc.StatusCode.ABORTED,
    ErrorKind.PROVIDER_ERROR: grpc.StatusCode.UNAVAILABLE,
}


def status_code_for(kind: ErrorKind) -> grpc.StatusCode:
    return ERROR_STATUS_MAP.get(kind, grpc.StatusCode.INTERNAL)
