from .page import PageSnapshot
from .selectors import AzureLoginSelectors

__all__ = ["AzureLoginSelectors", "PageSnapshot"]
