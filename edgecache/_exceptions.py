__all__ = ("EdgeCacheError", "StorageError", "GenerationUnavailable", "OriginError")


class EdgeCacheError(Exception): ...


class StorageError(EdgeCacheError): ...


class GenerationUnavailable(StorageError): ...


class OriginError(EdgeCacheError): ...
