class StorefrontError(Exception):
    """
    Base class of everything a screen is expected to catch and surface.
    """


class ValidationError(StorefrontError):
    """
    Missing or malformed user input, raised before any service call.
    """


class ServiceError(StorefrontError):
    """
    A collaborator (database, auth, location, export) failed.
    """


class AuthError(ServiceError):
    pass


class NotFoundError(StorefrontError):
    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class NothingToExport(StorefrontError):
    """
    Raised by the document composer when the order set is empty.
    """
