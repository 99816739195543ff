__all__ = ("EtaggerError", "ResponseBufferNotFoundError")


class EtaggerError(Exception): ...


class ResponseBufferNotFoundError(EtaggerError): ...
