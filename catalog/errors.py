# catalog/errors.py


class CatalogError(Exception):
    """Base class for everything the product store raises on purpose."""


class NotFoundError(CatalogError):
    def __init__(self, product_id: str):
        super().__init__(f"product '{product_id}' not found")
        self.product_id = product_id


class ConflictError(CatalogError):
    def __init__(self, product_id: str):
        super().__init__(f"product '{product_id}' already exists")
        self.product_id = product_id


class ValidationError(CatalogError, ValueError):
    pass


class StorageError(CatalogError):
    pass
