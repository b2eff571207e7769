"""Front-end adapters producing canonical construct trees."""

from cogscore.frontends.python_adapter import PythonFrontend
from cogscore.frontends.tree_loader import TreeDocumentError, load_tree_document

__all__ = ["PythonFrontend", "TreeDocumentError", "load_tree_document"]
