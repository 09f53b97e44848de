from .client import TodosClient

__all__ = ["TodosClient"]
