"""Error taxonomy shared by the mapping, import and matching pipelines."""


class OfferwatchError(RuntimeError):
    pass


class MappingError(OfferwatchError):
    """A document (or one element of it) could not be mapped into an offer."""


class MissingRequiredField(MappingError):
    def __init__(self, field: str):
        super().__init__(f"{field} is required but not found in document")
        self.field = field


class SchemaError(MappingError):
    """Mapping schema text is not a flat JSON object of field name -> path."""


class InvalidDocument(MappingError):
    """Remote document is neither a JSON object nor a JSON array."""


class FetchError(OfferwatchError):
    pass


class CacheUnavailable(OfferwatchError):
    pass


class StoreError(OfferwatchError):
    pass


class NotificationError(OfferwatchError):
    pass
